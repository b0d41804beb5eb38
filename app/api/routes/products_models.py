from __future__ import annotations

from datetime import datetime

from pydantic import Field

from .store_models import CamelModel


class ProductCreateRequest(CamelModel):
    id: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    price: float = Field(default=0, ge=0)
    category: str | None = Field(default=None, max_length=64)
    image: str | None = None
    stock: int = Field(default=0, ge=0)
    available_codes: list[str] = Field(default_factory=list)


class ProductUpdateRequest(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    price: float | None = Field(default=None, ge=0)
    category: str | None = Field(default=None, max_length=64)
    image: str | None = None
    stock: int | None = Field(default=None, ge=0)
    available_codes: list[str] | None = None


class ProductResponse(CamelModel):
    id: str
    name: str
    description: str | None = None
    price: float
    category: str | None = None
    image: str | None = None
    rating: float
    stock: int
    available_codes: list[str]
    created_at: datetime
    updated_at: datetime
