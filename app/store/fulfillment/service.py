from __future__ import annotations

import asyncio
from collections.abc import Sequence
from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.models.codes import Code
from app.db.models.orders import ORDER_STATUS_COMPLETED, Order
from app.db.models.products import Product
from app.db.repo.codes_repo import CodesRepo
from app.db.repo.orders_repo import OrdersRepo
from app.db.repo.products_repo import ProductsRepo
from app.db.session import is_postgres
from app.store.errors import ProductNotFoundError, StoreError, StoreValidationError
from app.store.fulfillment.errors import (
    CodeReservationConflictError,
    FulfillmentAbortedError,
    FulfillmentTimeoutError,
    InsufficientCodesError,
    OutOfStockError,
)
from app.store.fulfillment.types import FulfillmentResult, OrderLine
from app.store.inventory.projection import InventoryProjection

logger = structlog.get_logger(__name__)

DEFAULT_CONFIRM_PAYMENT_METHOD = "Chargily Pay"
DEFAULT_PAYMENT_METHOD = "unknown"
MONEY_QUANT = Decimal("0.01")


def new_order_id() -> str:
    return f"ord-{uuid4().hex}"


async def reserve_codes(
    session: AsyncSession,
    *,
    product_id: str,
    quantity: int,
    sold_to: str,
    order_id: str,
    now_utc: datetime,
) -> list[Code]:
    """Claim exactly ``quantity`` available codes for ``product_id`` inside the caller's transaction.

    Raises InsufficientCodesError when the product cannot supply the quantity and
    CodeReservationConflictError when a concurrent writer flipped one of the
    selected rows first.
    """
    reserved = await CodesRepo.select_available_for_update(
        session,
        product_id=product_id,
        limit=quantity,
    )
    if len(reserved) < quantity:
        raise InsufficientCodesError(product_id, requested=quantity, available=len(reserved))

    updated = await CodesRepo.mark_sold(
        session,
        code_ids=[code.id for code in reserved],
        sold_to=sold_to,
        order_id=order_id,
        now_utc=now_utc,
    )
    if updated != len(reserved):
        raise CodeReservationConflictError(product_id)
    return reserved


def merge_order_lines(lines: Sequence[OrderLine]) -> list[OrderLine]:
    """Collapse repeated products into one line each, ordered by product id."""
    quantities: dict[str, int] = {}
    names: dict[str, str | None] = {}
    for line in lines:
        product_id = str(line.product_id).strip()
        if not product_id:
            raise StoreValidationError("every item needs a product id")
        if line.quantity <= 0:
            raise StoreValidationError("item quantity must be positive")
        quantities[product_id] = quantities.get(product_id, 0) + int(line.quantity)
        names.setdefault(product_id, line.name)
    return [
        OrderLine(product_id=product_id, quantity=quantities[product_id], name=names[product_id])
        for product_id in sorted(quantities)
    ]


class FulfillmentService:
    """Turns purchase requests into orders backed by reserved redemption codes.

    Every attempt runs in one database transaction: product rows are locked in
    id order, available codes are selected with ``FOR UPDATE SKIP LOCKED`` and
    flipped to ``sold`` with a conditional update. If the conditional update
    touches fewer rows than were selected, another transaction won the race;
    the attempt is rolled back and retried from a fresh snapshot.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        timeout_seconds: float = 10.0,
        max_attempts: int = 3,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._session_factory = session_factory
        self._timeout_seconds = timeout_seconds
        self._max_attempts = max_attempts

    async def confirm_order(
        self,
        *,
        product_id: str,
        user_id: str,
        quantity: int,
        payment_method: str = DEFAULT_CONFIRM_PAYMENT_METHOD,
    ) -> FulfillmentResult:
        if quantity <= 0:
            raise StoreValidationError("quantity must be positive")
        if not str(user_id).strip():
            raise StoreValidationError("userId is required")

        return await self._fulfill(
            user_id=str(user_id),
            lines=merge_order_lines([OrderLine(product_id=str(product_id), quantity=quantity)]),
            total=None,
            payment_method=payment_method,
            check_stock=False,
            flow="confirm",
        )

    async def place_order(
        self,
        *,
        user_id: str,
        items: Sequence[OrderLine],
        total: Decimal | None,
        payment_method: str | None = None,
    ) -> FulfillmentResult:
        if not str(user_id).strip():
            raise StoreValidationError("userId is required")
        if not items:
            raise StoreValidationError("items must not be empty")

        return await self._fulfill(
            user_id=str(user_id),
            lines=merge_order_lines(items),
            total=total,
            payment_method=payment_method or DEFAULT_PAYMENT_METHOD,
            check_stock=True,
            flow="place",
        )

    async def _fulfill(
        self,
        *,
        user_id: str,
        lines: list[OrderLine],
        total: Decimal | None,
        payment_method: str,
        check_stock: bool,
        flow: str,
    ) -> FulfillmentResult:
        log = logger.bind(
            flow=flow,
            user_id=user_id,
            product_ids=[line.product_id for line in lines],
        )
        for attempt in range(1, self._max_attempts + 1):
            try:
                result = await asyncio.wait_for(
                    self._attempt(
                        user_id=user_id,
                        lines=lines,
                        total=total,
                        payment_method=payment_method,
                        check_stock=check_stock,
                    ),
                    timeout=self._timeout_seconds,
                )
            except CodeReservationConflictError as exc:
                log.warning("order_reservation_conflict", attempt=attempt, conflicting_product_id=str(exc))
                continue
            except asyncio.TimeoutError as exc:
                log.error("order_fulfillment_timed_out", attempt=attempt, timeout_seconds=self._timeout_seconds)
                raise FulfillmentTimeoutError(flow) from exc
            except StoreError as exc:
                log.info("order_fulfillment_rejected", attempt=attempt, reason=type(exc).__name__)
                raise
            except Exception as exc:
                log.exception("order_fulfillment_failed", attempt=attempt)
                raise FulfillmentAbortedError(flow) from exc

            result.attempts = attempt
            log.info(
                "order_fulfilled",
                order_id=result.order_id,
                attempt=attempt,
                codes_delivered=sum(len(values) for values in result.delivery_codes.values()),
            )
            return result

        log.error("order_reservation_attempts_exhausted", attempts=self._max_attempts)
        raise FulfillmentAbortedError(flow)

    async def _apply_lock_timeout(self, session: AsyncSession) -> None:
        if is_postgres(session):
            timeout_ms = max(1, int(self._timeout_seconds * 1000))
            await session.execute(text(f"SET LOCAL lock_timeout = {timeout_ms}"))

    async def _attempt(
        self,
        *,
        user_id: str,
        lines: list[OrderLine],
        total: Decimal | None,
        payment_method: str,
        check_stock: bool,
    ) -> FulfillmentResult:
        now_utc = datetime.now(timezone.utc)
        order_id = new_order_id()

        async with self._session_factory.begin() as session:
            await self._apply_lock_timeout(session)

            products = await ProductsRepo.list_by_ids_for_update(
                session,
                [line.product_id for line in lines],
            )
            products_by_id = {product.id: product for product in products}

            reservations: list[tuple[Product, list[Code]]] = []
            computed_total = Decimal("0")
            for line in lines:
                product = products_by_id.get(line.product_id)
                if product is None:
                    raise ProductNotFoundError(line.product_id, product_name=line.name)
                if check_stock and int(product.stock or 0) < line.quantity:
                    raise OutOfStockError(
                        product.id,
                        requested=line.quantity,
                        available=int(product.stock or 0),
                        product_name=line.name or product.name,
                    )

                try:
                    reserved = await reserve_codes(
                        session,
                        product_id=product.id,
                        quantity=line.quantity,
                        sold_to=user_id,
                        order_id=order_id,
                        now_utc=now_utc,
                    )
                except InsufficientCodesError as exc:
                    if not check_stock:
                        exc.product_name = line.name or product.name
                        raise
                    raise OutOfStockError(
                        product.id,
                        requested=exc.requested,
                        available=exc.available,
                        product_name=line.name or product.name,
                    ) from exc

                reservations.append((product, reserved))
                computed_total += Decimal(product.price or 0) * line.quantity

            computed_total = computed_total.quantize(MONEY_QUANT)
            if total is not None and Decimal(total).quantize(MONEY_QUANT) != computed_total:
                logger.warning(
                    "order_total_mismatch",
                    order_id=order_id,
                    submitted_total=str(total),
                    computed_total=str(computed_total),
                )

            delivery_codes = {
                product.id: [code.code for code in reserved] for product, reserved in reservations
            }
            order = await OrdersRepo.create(
                session,
                order=Order(
                    id=order_id,
                    user_id=user_id,
                    date=now_utc,
                    items=[
                        _order_item_payload(line, products_by_id[line.product_id]) for line in lines
                    ],
                    total=Decimal(total).quantize(MONEY_QUANT) if total is not None else computed_total,
                    status=ORDER_STATUS_COMPLETED,
                    delivery_codes=delivery_codes,
                    payment_method=payment_method,
                ),
            )

            for product, _reserved in reservations:
                await InventoryProjection.sync_after_sale(
                    session,
                    product=product,
                    sold_codes=delivery_codes[product.id],
                    now_utc=now_utc,
                )

        return FulfillmentResult(order_id=order.id, delivery_codes=delivery_codes, order=order)


def _order_item_payload(line: OrderLine, product: Product) -> dict[str, object]:
    payload: dict[str, object] = {
        "productId": line.product_id,
        "quantity": line.quantity,
        "name": line.name or product.name,
        "price": float(product.price or 0),
    }
    return payload
