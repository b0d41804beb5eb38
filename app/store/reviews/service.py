from __future__ import annotations

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from uuid import uuid4

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.models.reviews import Review
from app.db.repo.products_repo import ProductsRepo
from app.db.repo.reviews_repo import ReviewsRepo
from app.store.errors import ProductNotFoundError, StoreValidationError

logger = structlog.get_logger(__name__)

DEFAULT_REVIEWER_NAME = "مستخدم"
RATING_QUANT = Decimal("0.1")


def average_rating(count: int, total: Decimal | int) -> Decimal:
    if count <= 0:
        return Decimal("0.0")
    return (Decimal(str(total)) / Decimal(count)).quantize(RATING_QUANT, rounding=ROUND_HALF_UP)


class ReviewService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def add_review(
        self,
        *,
        product_id: str,
        user_id: str,
        rating: Decimal | float | int,
        user_name: str | None = None,
        comment: str | None = None,
    ) -> Review:
        if not str(product_id).strip() or not str(user_id).strip():
            raise StoreValidationError("productId and userId are required")
        score = Decimal(str(rating))
        if not score.is_finite() or not 1 <= score <= 5:
            raise StoreValidationError("rating must be between 1 and 5")
        score = score.quantize(RATING_QUANT, rounding=ROUND_HALF_UP)

        now_utc = datetime.now(timezone.utc)
        async with self._session_factory.begin() as session:
            product = await ProductsRepo.get_by_id(session, product_id)
            if product is None:
                raise ProductNotFoundError(product_id)
            review = await ReviewsRepo.create(
                session,
                review=Review(
                    id=f"rev-{uuid4().hex}",
                    product_id=product_id,
                    user_id=user_id,
                    user_name=user_name or DEFAULT_REVIEWER_NAME,
                    rating=score,
                    comment=comment,
                    date=now_utc,
                ),
            )

        # The aggregate runs in its own transaction; a failure leaves the review in place.
        try:
            new_rating = await self.refresh_product_rating(product_id=product_id)
        except SQLAlchemyError:
            logger.exception("product_rating_refresh_failed", product_id=product_id, review_id=review.id)
            new_rating = None
        logger.info(
            "review_added",
            review_id=review.id,
            product_id=product_id,
            rating=str(score),
            product_rating=str(new_rating) if new_rating is not None else None,
        )
        return review

    async def refresh_product_rating(self, *, product_id: str) -> Decimal | None:
        async with self._session_factory.begin() as session:
            product = await ProductsRepo.get_by_id_for_update(session, product_id)
            if product is None:
                logger.warning("product_rating_refresh_missing_product", product_id=product_id)
                return None
            count, total = await ReviewsRepo.get_rating_totals(session, product_id=product_id)
            product.rating = average_rating(count, total)
            product.updated_at = datetime.now(timezone.utc)
        return product.rating

    async def list_reviews(self, *, product_id: str | None = None) -> list[Review]:
        async with self._session_factory() as session:
            return await ReviewsRepo.list_reviews(session, product_id=product_id)
