from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import structlog
from fastapi import APIRouter, Query, Request

from app.db.models.products import Product
from app.db.repo.products_repo import ProductsRepo

from .products_models import ProductCreateRequest, ProductResponse, ProductUpdateRequest
from .store_helpers import (
    PRODUCT_NOT_FOUND_MESSAGE,
    bad_request,
    not_found,
    publish_change,
    read_session_factory,
    session_factory,
)
from .store_models import SuccessResponse

router = APIRouter(tags=["products"])
logger = structlog.get_logger(__name__)

PRODUCT_ALREADY_EXISTS_MESSAGE = "المنتج موجود مسبقاً"
REQUIRED_PRODUCT_FIELDS = {"name", "price", "stock", "available_codes"}


@router.get("/api/products", response_model=list[ProductResponse])
async def list_products(
    request: Request,
    category: str | None = Query(default=None, max_length=64),
) -> list[ProductResponse]:
    async with read_session_factory(request)() as session:
        products = await ProductsRepo.list_all(session, category=category)
    return [ProductResponse.model_validate(product) for product in products]


@router.get("/api/products/{product_id}", response_model=ProductResponse)
async def get_product(product_id: str, request: Request) -> ProductResponse:
    async with read_session_factory(request)() as session:
        product = await ProductsRepo.get_by_id(session, product_id)
    if product is None:
        raise not_found(PRODUCT_NOT_FOUND_MESSAGE)
    return ProductResponse.model_validate(product)


@router.post("/api/products", response_model=ProductResponse, status_code=201)
async def create_product(payload: ProductCreateRequest, request: Request) -> ProductResponse:
    now_utc = datetime.now(timezone.utc)
    async with session_factory(request).begin() as session:
        if await ProductsRepo.get_by_id(session, payload.id) is not None:
            raise bad_request(PRODUCT_ALREADY_EXISTS_MESSAGE)
        product = await ProductsRepo.create(
            session,
            product=Product(
                id=payload.id,
                name=payload.name,
                description=payload.description,
                price=Decimal(str(payload.price)),
                category=payload.category,
                image=payload.image,
                rating=Decimal("0"),
                stock=payload.stock,
                available_codes=list(payload.available_codes),
                created_at=now_utc,
                updated_at=now_utc,
            ),
        )
        response = ProductResponse.model_validate(product)

    logger.info("product_created", product_id=product.id)
    await publish_change(
        request,
        collection="products",
        operation_type="insert",
        document_key=response.id,
        document=response,
    )
    return response


@router.put("/api/products/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: str,
    payload: ProductUpdateRequest,
    request: Request,
) -> ProductResponse:
    changes = payload.model_dump(exclude_unset=True)
    async with session_factory(request).begin() as session:
        product = await ProductsRepo.get_by_id_for_update(session, product_id)
        if product is None:
            raise not_found(PRODUCT_NOT_FOUND_MESSAGE)
        for field_name, value in changes.items():
            if value is None and field_name in REQUIRED_PRODUCT_FIELDS:
                continue
            if field_name == "price":
                value = Decimal(str(value))
            setattr(product, field_name, value)
        product.updated_at = datetime.now(timezone.utc)
        await session.flush()
        response = ProductResponse.model_validate(product)

    logger.info("product_updated", product_id=product_id, fields=sorted(changes))
    await publish_change(
        request,
        collection="products",
        operation_type="update",
        document_key=product_id,
        document=response,
    )
    return response


@router.delete("/api/products/{product_id}", response_model=SuccessResponse)
async def delete_product(product_id: str, request: Request) -> SuccessResponse:
    async with session_factory(request).begin() as session:
        product = await ProductsRepo.get_by_id_for_update(session, product_id)
        if product is None:
            raise not_found(PRODUCT_NOT_FOUND_MESSAGE)
        await ProductsRepo.delete(session, product=product)

    logger.info("product_deleted", product_id=product_id)
    await publish_change(request, collection="products", operation_type="delete", document_key=product_id)
    return SuccessResponse()
