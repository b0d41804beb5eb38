from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.categories import Category
from app.db.models.payment_methods import PaymentMethod


class CatalogRepo:
    @staticmethod
    async def list_categories(session: AsyncSession) -> list[Category]:
        result = await session.execute(select(Category).order_by(Category.id.asc()))
        return list(result.scalars().all())

    @staticmethod
    async def get_category(session: AsyncSession, category_id: str) -> Category | None:
        return await session.get(Category, category_id)

    @staticmethod
    async def create_category(session: AsyncSession, *, category: Category) -> Category:
        session.add(category)
        await session.flush()
        return category

    @staticmethod
    async def delete_category(session: AsyncSession, *, category: Category) -> None:
        await session.delete(category)
        await session.flush()

    @staticmethod
    async def list_payment_methods(session: AsyncSession) -> list[PaymentMethod]:
        result = await session.execute(select(PaymentMethod).order_by(PaymentMethod.id.asc()))
        return list(result.scalars().all())

    @staticmethod
    async def get_payment_method_for_update(
        session: AsyncSession,
        method_id: str,
    ) -> PaymentMethod | None:
        stmt = select(PaymentMethod).where(PaymentMethod.id == method_id).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_payment_method(session: AsyncSession, method_id: str) -> PaymentMethod | None:
        return await session.get(PaymentMethod, method_id)

    @staticmethod
    async def create_payment_method(
        session: AsyncSession,
        *,
        payment_method: PaymentMethod,
    ) -> PaymentMethod:
        session.add(payment_method)
        await session.flush()
        return payment_method
