import pricing
from schemas import CityPricing, DistrictPricing


def test_district_price_wins_over_city_price():
    pricing.upsert_city(CityPricing(city="İstanbul", base_price=40))
    pricing.upsert_district(DistrictPricing(city="İstanbul", district="Kadıköy", base_price=25))
    assert pricing.resolve_shipping_cost("İstanbul", "Kadıköy") == (25.0, "district")
    assert pricing.resolve_shipping_cost("İstanbul", "Beşiktaş") == (40.0, "city")


def test_inactive_district_falls_back_to_city():
    pricing.upsert_city(CityPricing(city="Ankara", base_price=35))
    pricing.upsert_district(DistrictPricing(city="Ankara", district="Çankaya", base_price=20, is_active=False))
    assert pricing.resolve_shipping_cost("Ankara", "Çankaya") == (35.0, "city")


def test_config_then_settings_then_zero(db):
    assert pricing.resolve_shipping_cost("İzmir", "Bornova") == (0.0, "none")
    db["settings"].insert_one({"_id": "site-settings", "business": {"shippingCost": 50}})
    assert pricing.resolve_shipping_cost("İzmir", "Bornova") == (50.0, "settings")
    pricing.update_config({"defaultPrice": 30, "defaultExpressPrice": 60})
    assert pricing.resolve_shipping_cost("İzmir", "Bornova") == (30.0, "default")


def test_pricing_endpoints(admin_client):
    res = admin_client.post("/api/pricing", json={
        "type": "district", "pricing": {"city": "İstanbul", "district": "Kadıköy", "basePrice": 25}})
    assert res.status_code == 200
    assert res.json()["id"] == "İstanbul_Kadıköy"

    res = admin_client.get("/api/pricing", params={"city": "İstanbul", "district": "Kadıköy"})
    assert res.json()["pricing"]["basePrice"] == 25

    res = admin_client.get("/api/pricing/resolve", params={"city": "İstanbul", "district": "Kadıköy"})
    assert res.json() == {"city": "İstanbul", "district": "Kadıköy", "shippingCost": 25.0, "source": "district"}

    res = admin_client.put("/api/pricing", json={"type": "district", "id": "İstanbul_Kadıköy",
                                                 "pricing": {"basePrice": 30}})
    assert res.status_code == 200
    assert pricing.resolve_shipping_cost("İstanbul", "Kadıköy")[0] == 30.0

    listing = admin_client.get("/api/pricing").json()
    assert listing["config"] == {"defaultPrice": 25, "defaultExpressPrice": 50}
    assert len(listing["districts"]) == 1

    res = admin_client.delete("/api/pricing", params={"type": "district", "id": "İstanbul_Kadıköy"})
    assert res.status_code == 200
    assert admin_client.delete("/api/pricing", params={"type": "district", "id": "İstanbul_Kadıköy"}).status_code == 404


def test_invalid_pricing_body_is_rejected(admin_client):
    res = admin_client.post("/api/pricing", json={"type": "city", "pricing": {"city": "Bursa"}})
    assert res.status_code == 400


def test_pricing_mutations_require_admin(client):
    res = client.post("/api/pricing", json={"type": "city", "pricing": {"city": "Bursa", "basePrice": 10}})
    assert res.status_code == 401


def test_update_with_non_numeric_price_is_rejected(admin_client, order_payload):
    admin_client.post("/api/pricing", json={
        "type": "district", "pricing": {"city": "İstanbul", "district": "Kadıköy", "basePrice": 25}})
    res = admin_client.put("/api/pricing", json={"type": "district", "id": "İstanbul_Kadıköy",
                                                 "pricing": {"basePrice": "ücretsiz"}})
    assert res.status_code == 400
    assert pricing.resolve_shipping_cost("İstanbul", "Kadıköy") == (25.0, "district")

    res = admin_client.post("/api/orders", json=order_payload())
    assert res.status_code == 200
    assert res.json()["order"]["shippingCost"] == 25.0


def test_update_of_missing_entry_is_not_found(admin_client):
    res = admin_client.put("/api/pricing", json={"type": "city", "id": "Bursa", "pricing": {"basePrice": 10}})
    assert res.status_code == 404


def test_upsert_keeps_created_at(db):
    pricing.upsert_city(CityPricing(city="Bursa", base_price=10))
    first = db["pricing_city"].find_one({"_id": "Bursa"})
    pricing.upsert_city(CityPricing(city="Bursa", base_price=15))
    second = db["pricing_city"].find_one({"_id": "Bursa"})
    assert second["basePrice"] == 15
    assert second["createdAt"] == first["createdAt"]
    assert second["updatedAt"] >= first["updatedAt"]
