"""
Cart state.

The storefront keeps the cart in the browser; this class mirrors its rules so the checkout quote
and order snapshot are computed the same way on both sides. A line is identified by
(product id, variant id or "default") and keeps the price seen when it was added.
"""
from typing import Any, Dict, Iterable, List, Optional

from schemas import CartItem, OrderItem

DEFAULT_VARIANT = "default"


def _line_key(product_id: str, variant_id: Optional[str]) -> str:
    return f"{product_id}-{variant_id or DEFAULT_VARIANT}"


class Cart:
    def __init__(self, items: Optional[Iterable[CartItem]] = None):
        self._items: Dict[str, CartItem] = {}
        for item in items or []:
            key = _line_key(item.product_id, item.variant_id)
            if key in self._items:
                self._items[key].quantity += item.quantity
            else:
                self._items[key] = item.model_copy()

    @property
    def items(self) -> List[CartItem]:
        return list(self._items.values())

    def add(self, product: Dict[str, Any], variant: Optional[Dict[str, Any]] = None, quantity: int = 1) -> CartItem:
        """Add a catalog product (as returned by the API) or bump the quantity of its line."""
        if quantity < 1:
            raise ValueError("quantity must be at least 1")
        variant_id = variant.get("id") if variant else None
        key = _line_key(product["id"], variant_id)
        existing = self._items.get(key)
        if existing:
            existing.quantity += quantity
            return existing
        images = product.get("images") or []
        item = CartItem(
            product_id=product["id"],
            name=product["name"],
            price=float(variant["price"] if variant else product["price"]),
            quantity=quantity,
            variant_id=variant_id,
            variant_name=variant.get("name") if variant else None,
            image=images[0] if images else None,
        )
        self._items[key] = item
        return item

    def remove(self, product_id: str, variant_id: Optional[str] = None) -> None:
        self._items.pop(_line_key(product_id, variant_id), None)

    def update_quantity(self, product_id: str, quantity: int, variant_id: Optional[str] = None) -> None:
        if quantity <= 0:
            self.remove(product_id, variant_id)
            return
        item = self._items.get(_line_key(product_id, variant_id))
        if item:
            item.quantity = quantity

    def clear(self) -> None:
        self._items.clear()

    def contains(self, product_id: str, variant_id: Optional[str] = None) -> bool:
        return _line_key(product_id, variant_id) in self._items

    def total_price(self) -> float:
        return round(sum(i.price * i.quantity for i in self._items.values()), 2)

    def total_items(self) -> int:
        return sum(i.quantity for i in self._items.values())

    def is_empty(self) -> bool:
        return not self._items

    def to_order_items(self) -> List[OrderItem]:
        return [
            OrderItem(
                product_id=i.product_id,
                product_name=i.name,
                quantity=i.quantity,
                price=i.price,
                variant_id=i.variant_id,
                variant_name=i.variant_name,
                image=i.image,
            )
            for i in self._items.values()
        ]
