from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, Field

from .store_models import CamelModel


class OrderItemRequest(CamelModel):
    id: str | int = Field(validation_alias=AliasChoices("id", "productId"))
    quantity: int = Field(gt=0)
    name: str | None = Field(default=None, max_length=255)


class PlaceOrderRequest(CamelModel):
    user_id: str | int | None = None
    items: list[OrderItemRequest] | None = None
    total: float | None = Field(default=None, ge=0)
    payment_method: str | None = Field(default=None, max_length=64)


class ConfirmOrderRequest(CamelModel):
    product_id: str | int | None = None
    user_id: str | int | None = None
    quantity: int | None = None
    payment_method: str | None = Field(default=None, max_length=64)


class ConfirmOrderResponse(CamelModel):
    success: bool = True
    order_id: str
    delivery_codes: dict[str, list[str]]


class OrderResponse(CamelModel):
    id: str
    user_id: str
    date: datetime
    items: list[dict[str, Any]]
    total: float
    status: str
    delivery_codes: dict[str, list[str]]
    payment_method: str
    paypal_order_id: str | None = None
