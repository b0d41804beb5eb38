from __future__ import annotations

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.orders import Order
from app.db.repo.orders_repo import OrdersRepo
from app.store.errors import StoreValidationError
from app.store.orders.errors import OrderNotFoundError

logger = structlog.get_logger(__name__)


class OrderLedger:
    """Read access to fulfilled orders.

    Orders are written only by the fulfillment engine. Attaching the external
    PayPal reference is the single mutation allowed afterwards.
    """

    @staticmethod
    async def list_orders(session: AsyncSession, *, user_id: str | None = None) -> list[Order]:
        return await OrdersRepo.list_orders(session, user_id=user_id)

    @staticmethod
    async def get_order(session: AsyncSession, *, order_id: str) -> Order:
        order = await OrdersRepo.get_by_id(session, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    @staticmethod
    async def attach_paypal_reference(
        session: AsyncSession,
        *,
        order_id: str,
        paypal_order_id: str,
    ) -> Order:
        paypal_order_id = str(paypal_order_id).strip()
        if not paypal_order_id:
            raise StoreValidationError("paypalOrderId is required")

        order = await OrdersRepo.get_by_id_for_update(session, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)

        if order.paypal_order_id == paypal_order_id:
            return order
        if order.paypal_order_id is not None:
            logger.warning(
                "order_paypal_reference_replaced",
                order_id=order_id,
                previous_paypal_order_id=order.paypal_order_id,
                paypal_order_id=paypal_order_id,
            )
        order.paypal_order_id = paypal_order_id
        await session.flush()
        logger.info("order_paypal_reference_attached", order_id=order_id, paypal_order_id=paypal_order_id)
        return order
