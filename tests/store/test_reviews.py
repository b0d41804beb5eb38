from __future__ import annotations

from decimal import Decimal

import pytest

from app.store.errors import ProductNotFoundError, StoreValidationError
from app.store.reviews.service import DEFAULT_REVIEWER_NAME, ReviewService, average_rating
from tests.store.store_fixtures import _get_product, _seed_product


@pytest.mark.parametrize(
    ("count", "total", "expected"),
    [
        (0, 0, Decimal("0.0")),
        (3, 12, Decimal("4.0")),
        (3, 14, Decimal("4.7")),
        (2, 9, Decimal("4.5")),
        (4, 13, Decimal("3.3")),
    ],
)
def test_average_rating_rounds_to_one_decimal(count: int, total: int, expected: Decimal) -> None:
    assert average_rating(count, total) == expected


@pytest.mark.asyncio
async def test_add_review_recomputes_product_rating(session_factory) -> None:
    await _seed_product(session_factory, product_id="p1")
    service = ReviewService(session_factory)

    for rating in (5, 4, 3):
        await service.add_review(product_id="p1", user_id="u1", rating=rating, comment="ok")

    product = await _get_product(session_factory, "p1")
    assert float(product.rating) == 4.0


@pytest.mark.asyncio
async def test_add_review_defaults_reviewer_name_and_lists_by_product(session_factory) -> None:
    await _seed_product(session_factory, product_id="p1")
    await _seed_product(session_factory, product_id="p2")
    service = ReviewService(session_factory)

    review = await service.add_review(product_id="p1", user_id="u1", rating=5)
    await service.add_review(product_id="p2", user_id="u2", rating=2, user_name="Sara")

    assert review.id.startswith("rev-")
    assert review.user_name == DEFAULT_REVIEWER_NAME
    p1_reviews = await service.list_reviews(product_id="p1")
    assert [item.id for item in p1_reviews] == [review.id]
    assert len(await service.list_reviews()) == 2


@pytest.mark.asyncio
async def test_add_review_for_unknown_product_is_rejected(session_factory) -> None:
    service = ReviewService(session_factory)

    with pytest.raises(ProductNotFoundError):
        await service.add_review(product_id="ghost", user_id="u1", rating=4)
    assert await service.list_reviews() == []


@pytest.mark.asyncio
@pytest.mark.parametrize("rating", [0, 6])
async def test_add_review_rejects_out_of_range_rating(session_factory, rating: int) -> None:
    await _seed_product(session_factory, product_id="p1")

    with pytest.raises(StoreValidationError):
        await ReviewService(session_factory).add_review(product_id="p1", user_id="u1", rating=rating)


@pytest.mark.asyncio
async def test_refresh_product_rating_for_missing_product_returns_none(session_factory) -> None:
    assert await ReviewService(session_factory).refresh_product_rating(product_id="ghost") is None


@pytest.mark.asyncio
async def test_add_review_keeps_review_when_rating_refresh_fails(session_factory, monkeypatch) -> None:
    from sqlalchemy.exc import OperationalError

    await _seed_product(session_factory, product_id="p1")
    service = ReviewService(session_factory)

    async def _failing_refresh(*, product_id: str):
        raise OperationalError("UPDATE products", {}, Exception("database is locked"))

    monkeypatch.setattr(service, "refresh_product_rating", _failing_refresh)

    review = await service.add_review(product_id="p1", user_id="u1", rating=5, comment="ok")

    stored = await service.list_reviews(product_id="p1")
    assert [item.id for item in stored] == [review.id]


@pytest.mark.asyncio
async def test_add_review_accepts_fractional_ratings(session_factory) -> None:
    await _seed_product(session_factory, product_id="p1")
    service = ReviewService(session_factory)

    review = await service.add_review(product_id="p1", user_id="u1", rating=4.5)
    await service.add_review(product_id="p1", user_id="u2", rating=4)

    assert review.rating == Decimal("4.5")
    product = await _get_product(session_factory, "p1")
    assert product.rating == Decimal("4.3")
