from __future__ import annotations

from decimal import Decimal
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from app.services.payments import ChargilyGateway, PaymentGatewayError, PayPalGateway

from .store_helpers import bad_request

router = APIRouter(tags=["payments"])

AMOUNT_REQUIRED_MESSAGE = "المبلغ مطلوب"
ORDER_ID_REQUIRED_MESSAGE = "معرّف الطلب مطلوب"


class ChargilyCheckoutRequest(BaseModel):
    amount: float | None = Field(default=None, gt=0)
    success_url: str | None = Field(default=None, max_length=2048)
    failure_url: str | None = Field(default=None, max_length=2048)
    description: str | None = Field(default=None, max_length=500)


class ChargilyCheckoutResponse(BaseModel):
    checkout_url: str


class PayPalCreateOrderRequest(BaseModel):
    amount: float | None = Field(default=None, gt=0)
    description: str | None = Field(default=None, max_length=500)


class PayPalCaptureOrderRequest(BaseModel):
    orderID: str | None = Field(default=None, max_length=128)


def _chargily(request: Request) -> ChargilyGateway:
    return request.app.state.chargily


def _paypal(request: Request) -> PayPalGateway:
    return request.app.state.paypal


@router.post("/api/chargily/checkout", response_model=ChargilyCheckoutResponse)
async def create_chargily_checkout(payload: ChargilyCheckoutRequest, request: Request) -> Any:
    if payload.amount is None:
        raise bad_request(AMOUNT_REQUIRED_MESSAGE)

    try:
        checkout_url = await _chargily(request).create_checkout(
            amount=Decimal(str(payload.amount)),
            success_url=payload.success_url,
            failure_url=payload.failure_url,
            description=payload.description,
        )
    except PaymentGatewayError as exc:
        return JSONResponse(status_code=500, content={"message": exc.message})
    return ChargilyCheckoutResponse(checkout_url=checkout_url)


@router.post("/api/paypal/create-order")
async def create_paypal_order(payload: PayPalCreateOrderRequest, request: Request) -> Any:
    if payload.amount is None:
        raise bad_request(AMOUNT_REQUIRED_MESSAGE)

    try:
        return await _paypal(request).create_order(
            amount=Decimal(str(payload.amount)),
            description=payload.description,
        )
    except PaymentGatewayError as exc:
        return JSONResponse(status_code=500, content={"error": exc.message})


@router.post("/api/paypal/capture-order")
async def capture_paypal_order(payload: PayPalCaptureOrderRequest, request: Request) -> Any:
    if not payload.orderID:
        raise bad_request(ORDER_ID_REQUIRED_MESSAGE)

    try:
        return await _paypal(request).capture_order(order_id=payload.orderID)
    except PaymentGatewayError as exc:
        return JSONResponse(status_code=500, content={"error": exc.message})
