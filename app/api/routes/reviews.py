from __future__ import annotations

from datetime import datetime

import structlog
from fastapi import APIRouter, Query, Request
from pydantic import Field

from app.store.errors import ProductNotFoundError, StoreValidationError
from app.store.reviews.service import ReviewService

from .store_helpers import PRODUCT_NOT_FOUND_MESSAGE, bad_request, not_found, publish_change
from .store_models import CamelModel

router = APIRouter(tags=["reviews"])
logger = structlog.get_logger(__name__)

REVIEW_INCOMPLETE_MESSAGE = "معلومات التقييم غير كاملة"


class ReviewCreateRequest(CamelModel):
    product_id: str | int | None = None
    user_id: str | int | None = None
    user_name: str | None = Field(default=None, max_length=255)
    rating: float | None = Field(default=None, ge=1, le=5)
    comment: str | None = Field(default=None, max_length=4000)


class ReviewResponse(CamelModel):
    id: str
    product_id: str
    user_id: str
    user_name: str
    rating: float
    comment: str | None = None
    date: datetime


def _reviews(request: Request) -> ReviewService:
    return request.app.state.reviews


@router.get("/api/reviews", response_model=list[ReviewResponse])
async def list_reviews(
    request: Request,
    product_id: str | None = Query(default=None, alias="productId", max_length=64),
) -> list[ReviewResponse]:
    reviews = await _reviews(request).list_reviews(product_id=product_id)
    return [ReviewResponse.model_validate(review) for review in reviews]


@router.post("/api/reviews", response_model=ReviewResponse, status_code=201)
async def add_review(payload: ReviewCreateRequest, request: Request) -> ReviewResponse:
    if payload.product_id is None or payload.user_id is None or payload.rating is None:
        raise bad_request(REVIEW_INCOMPLETE_MESSAGE)

    try:
        review = await _reviews(request).add_review(
            product_id=str(payload.product_id),
            user_id=str(payload.user_id),
            user_name=payload.user_name,
            rating=payload.rating,
            comment=payload.comment,
        )
    except ProductNotFoundError as exc:
        raise not_found(PRODUCT_NOT_FOUND_MESSAGE) from exc
    except StoreValidationError as exc:
        raise bad_request(REVIEW_INCOMPLETE_MESSAGE) from exc

    response = ReviewResponse.model_validate(review)
    await publish_change(
        request,
        collection="reviews",
        operation_type="insert",
        document_key=response.id,
        document=response,
    )
    return response
