"""
Checkout: blocked-day rule, order numbers, totals and order placement.

Orders are written before any payment step (status and paymentStatus both "pending"), so a failed
gateway redirect or a lost notification never loses the order itself.
"""
import logging
import random
import time
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

import config
from database import get_db, now_utc, to_client
from schemas import Order, OrderCreate, OrderItem
import notifications
import pricing
import site_settings

logger = logging.getLogger("celenk.checkout")

ORDER_COLLECTION = "order"
ORDER_NUMBER_ATTEMPTS = 100
DEFAULT_BLOCKED_MESSAGE = "Bu özel günde sipariş alımı kapalıdır. İleri tarihli sipariş verebilirsiniz."


class OrderBlocked(Exception):
    """Raised when today falls inside an active blocked-day range."""

    def __init__(self, blocked_day: Dict[str, Any]):
        self.blocked_day = blocked_day
        super().__init__(blocked_day.get("message") or DEFAULT_BLOCKED_MESSAGE)


def store_today() -> date:
    return datetime.now(timezone(timedelta(hours=config.STORE_UTC_OFFSET_HOURS))).date()


def parse_day(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value or not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def find_blocked_day(blocked_days: List[Dict[str, Any]], delivery_date: Optional[str],
                     today: Optional[date] = None) -> Optional[Dict[str, Any]]:
    """Return the blocked range that stops an order, or None when the order may go ahead.

    A delivery date after today is always allowed, even inside a blocked range. Otherwise today
    is compared against every active range, both ends inclusive.
    """
    today = today or store_today()
    requested = parse_day(delivery_date)
    if requested is not None and requested > today:
        return None
    for day in blocked_days or []:
        if not day or not day.get("isActive"):
            continue
        start, end = parse_day(day.get("startDate")), parse_day(day.get("endDate"))
        if start is None or end is None:
            continue
        if start <= today <= end:
            return day
    return None


def check_blocked(delivery_date: Optional[str], today: Optional[date] = None) -> None:
    settings = site_settings.peek_settings()
    day = find_blocked_day(settings.get("orderBlockedDays") or [], delivery_date, today)
    if day:
        logger.info("Order blocked, today is a special day: %s", day.get("name"))
        raise OrderBlocked(day)


def order_number_exists(order_number: str) -> bool:
    return get_db()[ORDER_COLLECTION].find_one({"orderNumber": order_number}) is not None


def generate_order_number(exists: Callable[[str], bool] = order_number_exists) -> str:
    """Draw a 4-digit order number, probing for collisions before falling back to the clock."""
    for _ in range(ORDER_NUMBER_ATTEMPTS):
        candidate = str(random.randint(1000, 9999))
        if not exists(candidate):
            return candidate
    logger.warning("No free order number after %d attempts, using timestamp", ORDER_NUMBER_ATTEMPTS)
    return str(int(time.time() * 1000) % 9000 + 1000)


def compute_totals(items: List[OrderItem], shipping_cost: float) -> Dict[str, float]:
    subtotal = round(sum(i.price * i.quantity for i in items), 2)
    shipping = round(shipping_cost, 2)
    return {"subtotal": subtotal, "shippingCost": shipping, "total": round(subtotal + shipping, 2)}


def build_order(payload: OrderCreate, order_number: str) -> Order:
    invoice = payload.invoice
    if invoice and invoice.need_invoice and not invoice.is_complete():
        logger.info("Incomplete invoice details on order %s, continuing without invoice", order_number)
        invoice = None
    elif invoice and not invoice.need_invoice:
        invoice = None
    shipping_cost, source = pricing.resolve_shipping_cost(payload.delivery.city, payload.delivery.district)
    logger.info("Shipping for %s/%s resolved from %s: %.2f",
                payload.delivery.city, payload.delivery.district, source, shipping_cost)
    totals = compute_totals(payload.items, shipping_cost)
    return Order(
        order_number=order_number,
        sender=payload.sender,
        recipient=payload.recipient,
        delivery=payload.delivery,
        invoice=invoice,
        items=payload.items,
        subtotal=totals["subtotal"],
        shipping_cost=totals["shippingCost"],
        total=totals["total"],
        payment_method=payload.payment_method,
        shipping_method=payload.shipping_method,
        notes=payload.notes,
    )


def upsert_customer(order: Dict[str, Any]) -> None:
    sender = order.get("sender") or {}
    delivery = order.get("delivery") or {}
    key = {"email": sender["email"]} if sender.get("email") else {"phone": sender.get("phone")}
    now = now_utc()
    address = delivery.get("deliveryAddress") or (order.get("recipient") or {}).get("deliveryAddress") or ""
    get_db()["customer"].update_one(
        key,
        {
            "$set": {
                "name": f"{sender.get('firstName', '')} {sender.get('lastName', '')}".strip(),
                "phone": sender.get("phone") or "",
                "address": address,
                "status": "active",
                "lastOrderDate": now,
                "updatedAt": now,
            },
            "$inc": {"totalOrders": 1, "totalSpent": float(order.get("total") or 0)},
            "$setOnInsert": {"createdAt": now, "source": "website", "tags": [], "isVip": False},
        },
        upsert=True,
    )


def place_order(payload: OrderCreate) -> Dict[str, Any]:
    """Check the blocked days, persist the order as pending and run the post-order side channels."""
    check_blocked(payload.delivery.delivery_date)

    order_number = payload.order_number or generate_order_number()
    order = build_order(payload, order_number)
    doc = order.model_dump(by_alias=True, mode="json")
    now = now_utc()
    doc["createdAt"] = now
    doc["updatedAt"] = now
    result = get_db()[ORDER_COLLECTION].insert_one(doc)
    stored = to_client(doc)
    logger.info("Order %s created with id %s (%s)", order_number, result.inserted_id, order.payment_method)

    try:
        upsert_customer(stored)
    except Exception:
        logger.exception("Error creating/updating customer for order %s", order_number)

    response: Dict[str, Any] = {"id": stored["id"], "orderNumber": order_number, "order": stored}
    if order.payment_method in ("bank_transfer", "whatsapp"):
        whatsapp = notifications.prepare_whatsapp(stored)
        if whatsapp.get("success"):
            response["whatsappUrl"] = whatsapp["whatsappUrl"]
        notifications.notify_order(stored)
    return response
