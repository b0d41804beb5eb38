from __future__ import annotations

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Request

from app.db.models.categories import Category
from app.db.models.payment_methods import PaymentMethod
from app.db.repo.catalog_repo import CatalogRepo
from app.db.repo.store_settings_repo import StoreSettingsRepo

from .catalog_models import (
    CategoryRequest,
    CategoryResponse,
    PaymentMethodCreateRequest,
    PaymentMethodResponse,
    PaymentMethodUpdateRequest,
    StoreSettingsPayload,
    StoreSettingsResponse,
    StoreSettingsUpdateRequest,
)
from .store_helpers import (
    CATEGORY_NOT_FOUND_MESSAGE,
    PAYMENT_METHOD_NOT_FOUND_MESSAGE,
    bad_request,
    not_found,
    publish_change,
    read_session_factory,
    session_factory,
)
from .store_models import SuccessResponse

router = APIRouter(tags=["catalog"])
logger = structlog.get_logger(__name__)

CATEGORY_ALREADY_EXISTS_MESSAGE = "الفئة موجودة مسبقاً"
PAYMENT_METHOD_ALREADY_EXISTS_MESSAGE = "طريقة الدفع موجودة مسبقاً"


@router.get("/api/categories", response_model=list[CategoryResponse])
async def list_categories(request: Request) -> list[CategoryResponse]:
    async with read_session_factory(request)() as session:
        categories = await CatalogRepo.list_categories(session)
    return [CategoryResponse.model_validate(category) for category in categories]


@router.post("/api/categories", response_model=CategoryResponse, status_code=201)
async def create_category(payload: CategoryRequest, request: Request) -> CategoryResponse:
    async with session_factory(request).begin() as session:
        if await CatalogRepo.get_category(session, payload.id) is not None:
            raise bad_request(CATEGORY_ALREADY_EXISTS_MESSAGE)
        category = await CatalogRepo.create_category(
            session,
            category=Category(id=payload.id, name=payload.name),
        )
        response = CategoryResponse.model_validate(category)

    await publish_change(
        request,
        collection="categories",
        operation_type="insert",
        document_key=response.id,
        document=response,
    )
    return response


@router.delete("/api/categories/{category_id}", response_model=SuccessResponse)
async def delete_category(category_id: str, request: Request) -> SuccessResponse:
    async with session_factory(request).begin() as session:
        category = await CatalogRepo.get_category(session, category_id)
        if category is None:
            raise not_found(CATEGORY_NOT_FOUND_MESSAGE)
        await CatalogRepo.delete_category(session, category=category)

    await publish_change(request, collection="categories", operation_type="delete", document_key=category_id)
    return SuccessResponse()


@router.get("/api/payment-methods", response_model=list[PaymentMethodResponse])
async def list_payment_methods(request: Request) -> list[PaymentMethodResponse]:
    async with read_session_factory(request)() as session:
        methods = await CatalogRepo.list_payment_methods(session)
    return [PaymentMethodResponse.model_validate(method) for method in methods]


@router.post("/api/payment-methods", response_model=PaymentMethodResponse, status_code=201)
async def create_payment_method(
    payload: PaymentMethodCreateRequest,
    request: Request,
) -> PaymentMethodResponse:
    async with session_factory(request).begin() as session:
        if await CatalogRepo.get_payment_method(session, payload.id) is not None:
            raise bad_request(PAYMENT_METHOD_ALREADY_EXISTS_MESSAGE)
        method = await CatalogRepo.create_payment_method(
            session,
            payment_method=PaymentMethod(
                id=payload.id,
                name=payload.name,
                type=payload.type,
                is_active=payload.is_active,
                description=payload.description,
            ),
        )
        response = PaymentMethodResponse.model_validate(method)

    await publish_change(
        request,
        collection="paymentmethods",
        operation_type="insert",
        document_key=response.id,
        document=response,
    )
    return response


@router.put("/api/payment-methods/{method_id}", response_model=PaymentMethodResponse)
async def update_payment_method(
    method_id: str,
    payload: PaymentMethodUpdateRequest,
    request: Request,
) -> PaymentMethodResponse:
    changes = {key: value for key, value in payload.model_dump(exclude_unset=True).items() if value is not None}
    async with session_factory(request).begin() as session:
        method = await CatalogRepo.get_payment_method_for_update(session, method_id)
        if method is None:
            raise not_found(PAYMENT_METHOD_NOT_FOUND_MESSAGE)
        for field_name, value in changes.items():
            setattr(method, field_name, value)
        await session.flush()
        response = PaymentMethodResponse.model_validate(method)

    logger.info("payment_method_updated", payment_method_id=method_id, fields=sorted(changes))
    await publish_change(
        request,
        collection="paymentmethods",
        operation_type="update",
        document_key=method_id,
        document=response,
    )
    return response


@router.get("/api/settings", response_model=StoreSettingsResponse)
async def get_store_settings(request: Request) -> StoreSettingsResponse:
    async with read_session_factory(request)() as session:
        row = await StoreSettingsRepo.get(session)
    if row is None:
        return StoreSettingsResponse.from_payload(None, None)
    return StoreSettingsResponse.from_payload(row.payload, row.updated_at)


@router.put("/api/settings", response_model=StoreSettingsResponse)
async def update_store_settings(
    payload: StoreSettingsUpdateRequest,
    request: Request,
) -> StoreSettingsResponse:
    changes = payload.model_dump(exclude_unset=True, exclude_none=True, by_alias=True)
    now_utc = datetime.now(timezone.utc)
    async with session_factory(request).begin() as session:
        row = await StoreSettingsRepo.get_for_update(session)
        current = StoreSettingsPayload.model_validate(row.payload if row is not None else {})
        merged = current.model_dump(by_alias=True)
        social_links = changes.pop("socialLinks", None)
        merged.update(changes)
        if social_links:
            merged["socialLinks"] = {**merged["socialLinks"], **social_links}
        stored = StoreSettingsPayload.model_validate(merged).model_dump(by_alias=True)
        row = await StoreSettingsRepo.upsert(session, payload=stored, now_utc=now_utc)
        response = StoreSettingsResponse.from_payload(row.payload, row.updated_at)

    logger.info("store_settings_updated", fields=sorted([*changes, *(["socialLinks"] if social_links else [])]))
    await publish_change(
        request,
        collection="settings",
        operation_type="update",
        document_key="store",
        document=response,
    )
    return response
