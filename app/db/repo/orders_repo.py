from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.orders import Order


class OrdersRepo:
    @staticmethod
    async def create(session: AsyncSession, *, order: Order) -> Order:
        session.add(order)
        await session.flush()
        return order

    @staticmethod
    async def get_by_id(session: AsyncSession, order_id: str) -> Order | None:
        return await session.get(Order, order_id)

    @staticmethod
    async def get_by_id_for_update(session: AsyncSession, order_id: str) -> Order | None:
        stmt = select(Order).where(Order.id == order_id).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_orders(
        session: AsyncSession,
        *,
        user_id: str | None = None,
        limit: int = 500,
    ) -> list[Order]:
        stmt = select(Order).order_by(Order.date.desc(), Order.id.desc()).limit(limit)
        if user_id is not None:
            stmt = stmt.where(Order.user_id == user_id)
        result = await session.execute(stmt)
        return list(result.scalars().all())
