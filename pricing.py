import logging
from typing import Any, Dict, Optional, Tuple

from database import get_db, now_utc
from schemas import CityPricing, DistrictPricing, PricingConfig
import site_settings

logger = logging.getLogger("celenk.pricing")

DISTRICT_COLLECTION = "pricing_district"
CITY_COLLECTION = "pricing_city"
CONFIG_COLLECTION = "pricing_config"
CONFIG_DOC_ID = "config"


def district_id(city: str, district: str) -> str:
    return f"{city}_{district}"


def _client(doc: Dict[str, Any]) -> Dict[str, Any]:
    doc = dict(doc)
    doc["id"] = doc.pop("_id")
    return doc


def find_district_price(city: str, district: str) -> Optional[Dict[str, Any]]:
    doc = get_db()[DISTRICT_COLLECTION].find_one({"city": city, "district": district, "isActive": True})
    return _client(doc) if doc else None


def find_city_price(city: str) -> Optional[Dict[str, Any]]:
    doc = get_db()[CITY_COLLECTION].find_one({"city": city, "isActive": True})
    return _client(doc) if doc else None


def get_config() -> Optional[Dict[str, Any]]:
    return get_db()[CONFIG_COLLECTION].find_one({"_id": CONFIG_DOC_ID})


def list_pricing() -> Dict[str, Any]:
    config_doc = get_config() or {}
    defaults = PricingConfig()
    return {
        "config": {
            "defaultPrice": config_doc.get("defaultPrice", defaults.default_price),
            "defaultExpressPrice": config_doc.get("defaultExpressPrice", defaults.default_express_price),
        },
        "districts": [_client(d) for d in get_db()[DISTRICT_COLLECTION].find()],
        "cities": [_client(c) for c in get_db()[CITY_COLLECTION].find()],
    }


def _save(collection: str, doc_id: str, values: Dict[str, Any]) -> None:
    now = now_utc()
    get_db()[collection].update_one(
        {"_id": doc_id},
        {"$set": {**values, "updatedAt": now}, "$setOnInsert": {"createdAt": now}},
        upsert=True,
    )


def upsert_district(pricing: DistrictPricing) -> str:
    doc_id = district_id(pricing.city, pricing.district)
    _save(DISTRICT_COLLECTION, doc_id, pricing.model_dump(by_alias=True))
    logger.info("District price saved: %s = %.2f", doc_id, pricing.base_price)
    return doc_id


def upsert_city(pricing: CityPricing) -> str:
    _save(CITY_COLLECTION, pricing.city, pricing.model_dump(by_alias=True))
    logger.info("City price saved: %s = %.2f", pricing.city, pricing.base_price)
    return pricing.city


def update_config(values: Dict[str, Any]) -> None:
    get_db()[CONFIG_COLLECTION].update_one(
        {"_id": CONFIG_DOC_ID}, {"$set": {**values, "updatedAt": now_utc()}}, upsert=True,
    )


def _collection_for(kind: str) -> str:
    return DISTRICT_COLLECTION if kind == "district" else CITY_COLLECTION


def update_entry(kind: str, entry_id: str, values: Dict[str, Any]) -> bool:
    """Merge `values` into a stored entry; raises ValidationError when the result is not a valid entry."""
    col = get_db()[_collection_for(kind)]
    stored = col.find_one({"_id": entry_id})
    if stored is None:
        return False
    model = DistrictPricing if kind == "district" else CityPricing
    merged = model.model_validate({**stored, **values})
    col.update_one({"_id": entry_id}, {"$set": {**merged.model_dump(by_alias=True), "updatedAt": now_utc()}})
    return True


def delete_entry(kind: str, entry_id: str) -> bool:
    res = get_db()[_collection_for(kind)].delete_one({"_id": entry_id})
    if res.deleted_count:
        logger.info("Deleted %s price %s", kind, entry_id)
    return res.deleted_count > 0


def resolve_shipping_cost(city: Optional[str], district: Optional[str] = None) -> Tuple[float, str]:
    """Resolve the delivery fee for a location and report where it came from.

    Order of precedence: active district price, active city price, the pricing config default,
    the site settings shipping cost, zero.
    """
    if city and district:
        entry = find_district_price(city, district)
        if entry:
            return float(entry["basePrice"]), "district"
    if city:
        entry = find_city_price(city)
        if entry:
            return float(entry["basePrice"]), "city"
    config_doc = get_config()
    if config_doc and config_doc.get("defaultPrice") is not None:
        return float(config_doc["defaultPrice"]), "default"
    business = site_settings.peek_settings().get("business") or {}
    if business.get("shippingCost") is not None:
        return float(business["shippingCost"]), "settings"
    return 0.0, "none"
