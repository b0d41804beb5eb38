from __future__ import annotations

from dataclasses import dataclass

from app.db.models.orders import Order


@dataclass(frozen=True, slots=True)
class OrderLine:
    product_id: str
    quantity: int
    name: str | None = None


@dataclass(slots=True)
class FulfillmentResult:
    order_id: str
    delivery_codes: dict[str, list[str]]
    order: Order
    attempts: int = 1
