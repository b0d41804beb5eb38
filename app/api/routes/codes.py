from __future__ import annotations

import structlog
from fastapi import APIRouter, Query, Request

from app.db.repo.products_repo import ProductsRepo
from app.store.codes.errors import CodeNotFoundError, InvalidCodeStatusError
from app.store.codes.service import CodeStore
from app.store.errors import StoreValidationError

from .codes_models import (
    CodeResponse,
    CodesAddRequest,
    CodesAddResponse,
    CodeStatsResponse,
    CodeUpdateRequest,
)
from .products_models import ProductResponse
from .store_helpers import (
    CODE_NOT_FOUND_MESSAGE,
    bad_request,
    not_found,
    publish_change,
    read_session_factory,
    session_factory,
)
from .store_models import SuccessResponse

router = APIRouter(tags=["codes"])
logger = structlog.get_logger(__name__)

CODES_REQUIRED_MESSAGE = "productId and codes array are required"
INVALID_STATUS_MESSAGE = "status must be 'available' or 'sold'"


async def _publish_product_snapshot(request: Request, product_id: str) -> None:
    # Runs after commit, so a failure here must not turn the write into an error.
    try:
        async with read_session_factory(request)() as session:
            product = await ProductsRepo.get_by_id(session, product_id)
            snapshot = ProductResponse.model_validate(product) if product is not None else None
        if snapshot is not None:
            await publish_change(
                request,
                collection="products",
                operation_type="update",
                document_key=product_id,
                document=snapshot,
            )
    except Exception:
        logger.exception("product_change_publish_failed", product_id=product_id)


@router.get("/api/codes", response_model=list[CodeResponse])
async def list_codes(
    request: Request,
    product_id: str | None = Query(default=None, alias="productId", max_length=64),
    status: str | None = Query(default=None, max_length=16),
) -> list[CodeResponse]:
    try:
        async with read_session_factory(request)() as session:
            codes = await CodeStore.list_codes(session, product_id=product_id, status=status)
    except InvalidCodeStatusError as exc:
        raise bad_request(INVALID_STATUS_MESSAGE) from exc
    return [CodeResponse.model_validate(code) for code in codes]


@router.post("/api/codes", response_model=CodesAddResponse, status_code=201)
async def add_codes(payload: CodesAddRequest, request: Request) -> CodesAddResponse:
    if payload.product_id is None or not payload.codes:
        raise bad_request(CODES_REQUIRED_MESSAGE)

    try:
        async with session_factory(request).begin() as session:
            result = await CodeStore.add_codes(
                session,
                product_id=str(payload.product_id),
                codes=payload.codes,
            )
            inserted = [CodeResponse.model_validate(code) for code in result.inserted]
    except StoreValidationError as exc:
        raise bad_request(CODES_REQUIRED_MESSAGE) from exc

    for code in inserted:
        await publish_change(
            request,
            collection="codes",
            operation_type="insert",
            document_key=code.id,
            document=code,
        )
    if inserted:
        await _publish_product_snapshot(request, result.product_id)

    return CodesAddResponse(count=len(inserted), duplicates=result.duplicates, codes=inserted)


@router.put("/api/codes/{code_id}", response_model=CodeResponse)
async def update_code(code_id: str, payload: CodeUpdateRequest, request: Request) -> CodeResponse:
    try:
        async with session_factory(request).begin() as session:
            code = await CodeStore.update_code(
                session,
                code_id=code_id,
                status=payload.status,
                sold_to=payload.sold_to,
                order_id=payload.order_id,
            )
            response = CodeResponse.model_validate(code)
    except CodeNotFoundError as exc:
        raise not_found(CODE_NOT_FOUND_MESSAGE) from exc
    except InvalidCodeStatusError as exc:
        raise bad_request(INVALID_STATUS_MESSAGE) from exc

    await publish_change(
        request,
        collection="codes",
        operation_type="update",
        document_key=code_id,
        document=response,
    )
    await _publish_product_snapshot(request, response.product_id)
    return response


@router.delete("/api/codes/{code_id}", response_model=SuccessResponse)
async def delete_code(code_id: str, request: Request) -> SuccessResponse:
    try:
        async with session_factory(request).begin() as session:
            code = await CodeStore.delete_code(session, code_id=code_id)
            product_id = code.product_id
    except CodeNotFoundError as exc:
        raise not_found(CODE_NOT_FOUND_MESSAGE) from exc

    await publish_change(request, collection="codes", operation_type="delete", document_key=code_id)
    await _publish_product_snapshot(request, product_id)
    return SuccessResponse()


@router.get("/api/codes/stats/{product_id}", response_model=CodeStatsResponse)
async def get_code_stats(product_id: str, request: Request) -> CodeStatsResponse:
    async with read_session_factory(request)() as session:
        stats = await CodeStore.stats(session, product_id=product_id)
    return CodeStatsResponse(
        product_id=stats.product_id,
        available=stats.available,
        sold=stats.sold,
        total=stats.total,
    )
