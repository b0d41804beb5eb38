from __future__ import annotations

from typing import Any

from fastapi import HTTPException, Request
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import Settings
from app.services.realtime import ChangeBroadcaster

PRODUCT_NOT_FOUND_MESSAGE = "المنتج غير موجود"
CODE_NOT_FOUND_MESSAGE = "الكود غير موجود"
ORDER_NOT_FOUND_MESSAGE = "الطلب غير موجود"
CATEGORY_NOT_FOUND_MESSAGE = "الفئة غير موجودة"
PAYMENT_METHOD_NOT_FOUND_MESSAGE = "طريقة الدفع غير موجودة"


def session_factory(request: Request) -> async_sessionmaker[AsyncSession]:
    return request.app.state.session_factory


def read_session_factory(request: Request) -> async_sessionmaker[AsyncSession]:
    return request.app.state.read_session_factory


def app_settings(request: Request) -> Settings:
    return request.app.state.settings


def broadcaster(request: Request) -> ChangeBroadcaster:
    return request.app.state.broadcaster


def not_found(message: str) -> HTTPException:
    return HTTPException(status_code=404, detail=message)


def bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=400, detail=message)


async def publish_change(
    request: Request,
    *,
    collection: str,
    operation_type: str,
    document_key: str,
    document: BaseModel | dict[str, Any] | None = None,
) -> None:
    full_document = document.model_dump(mode="json", by_alias=True) if isinstance(document, BaseModel) else document
    await broadcaster(request).publish(
        collection=collection,
        operation_type=operation_type,
        document_key=document_key,
        full_document=full_document,
    )
