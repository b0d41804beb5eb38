from __future__ import annotations

from decimal import Decimal

import structlog
from fastapi import APIRouter, HTTPException, Query, Request

from app.db.repo.products_repo import ProductsRepo
from app.store.errors import ProductNotFoundError, StoreValidationError
from app.store.fulfillment.errors import FulfillmentError, InsufficientCodesError, OutOfStockError
from app.store.fulfillment.service import DEFAULT_CONFIRM_PAYMENT_METHOD, FulfillmentService
from app.store.fulfillment.types import FulfillmentResult, OrderLine
from app.store.orders.errors import OrderNotFoundError
from app.store.orders.service import OrderLedger

from .orders_models import ConfirmOrderRequest, ConfirmOrderResponse, OrderResponse, PlaceOrderRequest
from .products_models import ProductResponse
from .store_helpers import (
    ORDER_NOT_FOUND_MESSAGE,
    PRODUCT_NOT_FOUND_MESSAGE,
    bad_request,
    not_found,
    publish_change,
    read_session_factory,
    session_factory,
)

router = APIRouter(tags=["orders"])
logger = structlog.get_logger(__name__)

ORDER_INCOMPLETE_MESSAGE = "معلومات الطلب غير كاملة"
CONFIRM_REQUIRED_MESSAGE = "productId, userId and positive quantity are required"
INSUFFICIENT_CODES_MESSAGE = "لا يوجد أكواد كافية لهذا المنتج"
ORDER_FAILED_MESSAGE = "خطأ في تأكيد الطلب"


def _fulfillment(request: Request) -> FulfillmentService:
    return request.app.state.fulfillment


async def _publish_fulfillment(request: Request, result: FulfillmentResult) -> None:
    order = OrderResponse.model_validate(result.order)
    await publish_change(
        request,
        collection="orders",
        operation_type="insert",
        document_key=order.id,
        document=order,
    )
    async with read_session_factory(request)() as session:
        snapshots = []
        for product_id in result.delivery_codes:
            product = await ProductsRepo.get_by_id(session, product_id)
            if product is not None:
                snapshots.append(ProductResponse.model_validate(product))
    for snapshot in snapshots:
        await publish_change(
            request,
            collection="products",
            operation_type="update",
            document_key=snapshot.id,
            document=snapshot,
        )


async def _announce_fulfillment(request: Request, result: FulfillmentResult) -> None:
    # The order is already committed; the buyer must still receive the codes.
    try:
        await _publish_fulfillment(request, result)
    except Exception:
        logger.exception("order_change_publish_failed", order_id=result.order_id)


@router.get("/api/orders", response_model=list[OrderResponse])
async def list_orders(
    request: Request,
    user_id: str | None = Query(default=None, alias="userId", max_length=64),
) -> list[OrderResponse]:
    async with read_session_factory(request)() as session:
        orders = await OrderLedger.list_orders(session, user_id=user_id)
    return [OrderResponse.model_validate(order) for order in orders]


@router.get("/api/orders/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str, request: Request) -> OrderResponse:
    try:
        async with read_session_factory(request)() as session:
            order = await OrderLedger.get_order(session, order_id=order_id)
    except OrderNotFoundError as exc:
        raise not_found(ORDER_NOT_FOUND_MESSAGE) from exc
    return OrderResponse.model_validate(order)


@router.post("/api/orders", response_model=OrderResponse, status_code=201)
async def place_order(payload: PlaceOrderRequest, request: Request) -> OrderResponse:
    if payload.user_id is None or not payload.items or payload.total is None:
        raise bad_request(ORDER_INCOMPLETE_MESSAGE)

    try:
        result = await _fulfillment(request).place_order(
            user_id=str(payload.user_id),
            items=[
                OrderLine(product_id=str(item.id), quantity=item.quantity, name=item.name)
                for item in payload.items
            ],
            total=Decimal(str(payload.total)),
            payment_method=payload.payment_method,
        )
    except ProductNotFoundError as exc:
        raise bad_request(f"المنتج {exc.product_name or exc.product_id} غير موجود") from exc
    except OutOfStockError as exc:
        raise bad_request(f"الكمية المطلوبة من {exc.product_name or exc.product_id} غير متوفرة") from exc
    except StoreValidationError as exc:
        raise bad_request(ORDER_INCOMPLETE_MESSAGE) from exc
    except FulfillmentError as exc:
        # Storefront checkout treats every failed order as a client-visible 400.
        raise bad_request(ORDER_FAILED_MESSAGE) from exc

    await _announce_fulfillment(request, result)
    return OrderResponse.model_validate(result.order)


@router.post("/api/orders/confirm", response_model=ConfirmOrderResponse)
async def confirm_order(payload: ConfirmOrderRequest, request: Request) -> ConfirmOrderResponse:
    if (
        payload.product_id is None
        or payload.user_id is None
        or payload.quantity is None
        or payload.quantity <= 0
    ):
        raise bad_request(CONFIRM_REQUIRED_MESSAGE)

    try:
        result = await _fulfillment(request).confirm_order(
            product_id=str(payload.product_id),
            user_id=str(payload.user_id),
            quantity=payload.quantity,
            payment_method=payload.payment_method or DEFAULT_CONFIRM_PAYMENT_METHOD,
        )
    except ProductNotFoundError as exc:
        raise not_found(PRODUCT_NOT_FOUND_MESSAGE) from exc
    except InsufficientCodesError as exc:
        raise bad_request(INSUFFICIENT_CODES_MESSAGE) from exc
    except StoreValidationError as exc:
        raise bad_request(CONFIRM_REQUIRED_MESSAGE) from exc
    except FulfillmentError as exc:
        raise HTTPException(status_code=500, detail=ORDER_FAILED_MESSAGE) from exc

    await _announce_fulfillment(request, result)
    return ConfirmOrderResponse(order_id=result.order_id, delivery_codes=result.delivery_codes)


@router.put("/api/orders/{order_id}/paypal/{paypal_order_id}", response_model=OrderResponse)
async def attach_paypal_reference(order_id: str, paypal_order_id: str, request: Request) -> OrderResponse:
    try:
        async with session_factory(request).begin() as session:
            order = await OrderLedger.attach_paypal_reference(
                session,
                order_id=order_id,
                paypal_order_id=paypal_order_id,
            )
            response = OrderResponse.model_validate(order)
    except OrderNotFoundError as exc:
        raise not_found(ORDER_NOT_FOUND_MESSAGE) from exc
    except StoreValidationError as exc:
        raise bad_request("معرّفات مطلوبة") from exc

    await publish_change(
        request,
        collection="orders",
        operation_type="update",
        document_key=order_id,
        document=response,
    )
    return response
