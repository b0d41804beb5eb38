from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.products import Product


class ProductsRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, product_id: str) -> Product | None:
        return await session.get(Product, product_id)

    @staticmethod
    async def get_by_id_for_update(session: AsyncSession, product_id: str) -> Product | None:
        stmt = select(Product).where(Product.id == product_id).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_all(session: AsyncSession, *, category: str | None = None) -> list[Product]:
        stmt = select(Product).order_by(Product.created_at.asc(), Product.id.asc())
        if category:
            stmt = stmt.where(Product.category == category)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_by_ids_for_update(
        session: AsyncSession,
        product_ids: Sequence[str],
    ) -> list[Product]:
        ids = tuple(sorted({str(product_id) for product_id in product_ids}))
        if not ids:
            return []
        # Stable lock order keeps multi-product orders from deadlocking each other.
        stmt = select(Product).where(Product.id.in_(ids)).order_by(Product.id.asc()).with_for_update()
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def create(session: AsyncSession, *, product: Product) -> Product:
        session.add(product)
        await session.flush()
        return product

    @staticmethod
    async def delete(session: AsyncSession, *, product: Product) -> None:
        await session.delete(product)
        await session.flush()
