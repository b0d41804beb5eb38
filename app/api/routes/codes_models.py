from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from .store_models import CamelModel


class CodesAddRequest(CamelModel):
    product_id: str | int | None = None
    codes: list[str | int] | None = None


class CodeUpdateRequest(CamelModel):
    status: str | None = Field(default=None, max_length=16)
    sold_to: str | None = Field(default=None, max_length=64)
    order_id: str | None = Field(default=None, max_length=64)


class CodeResponse(CamelModel):
    id: str
    product_id: str
    code: str
    status: str
    created_at: datetime
    sold_at: datetime | None = None
    sold_to: str | None = None
    order_id: str | None = None


class CodesAddResponse(BaseModel):
    count: int = Field(ge=0)
    duplicates: int = Field(ge=0)
    codes: list[CodeResponse]


class CodeStatsResponse(CamelModel):
    product_id: str
    available: int = Field(ge=0)
    sold: int = Field(ge=0)
    total: int = Field(ge=0)
