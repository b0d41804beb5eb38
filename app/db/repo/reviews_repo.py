from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.reviews import Review


class ReviewsRepo:
    @staticmethod
    async def create(session: AsyncSession, *, review: Review) -> Review:
        session.add(review)
        await session.flush()
        return review

    @staticmethod
    async def list_reviews(session: AsyncSession, *, product_id: str | None = None) -> list[Review]:
        stmt = select(Review).order_by(Review.date.desc(), Review.id.desc())
        if product_id is not None:
            stmt = stmt.where(Review.product_id == product_id)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def get_rating_totals(session: AsyncSession, *, product_id: str) -> tuple[int, Decimal]:
        stmt = select(func.count(Review.id), func.coalesce(func.sum(Review.rating), 0)).where(
            Review.product_id == product_id
        )
        count, total = (await session.execute(stmt)).one()
        return int(count or 0), Decimal(str(total or 0))
