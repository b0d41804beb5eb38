from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field

from .store_models import CamelModel


class CategoryRequest(CamelModel):
    id: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=255)


class CategoryResponse(CamelModel):
    id: str
    name: str


class PaymentMethodUpdateRequest(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    type: str | None = Field(default=None, min_length=1, max_length=32)
    is_active: bool | None = None
    description: str | None = None


class PaymentMethodResponse(CamelModel):
    id: str
    name: str
    type: str
    is_active: bool
    description: str | None = None


class SocialLinks(CamelModel):
    facebook: str = ""
    twitter: str = ""
    instagram: str = ""
    telegram: str = ""
    youtube: str = ""


class StoreSettingsPayload(CamelModel):
    site_name: str = "ماتاجر - Matajir"
    site_description: str = "منصة عربية لبيع البطاقات الرقمية والاشتراكات"
    logo_url: str = ""
    footer_text: str = "جميع الحقوق محفوظة © ماتاجر"
    social_links: SocialLinks = Field(default_factory=SocialLinks)


class StoreSettingsUpdateRequest(CamelModel):
    site_name: str | None = Field(default=None, max_length=255)
    site_description: str | None = Field(default=None, max_length=2000)
    logo_url: str | None = Field(default=None, max_length=2048)
    footer_text: str | None = Field(default=None, max_length=2000)
    social_links: dict[str, str] | None = None


class StoreSettingsResponse(StoreSettingsPayload):
    updated_at: datetime | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any] | None, updated_at: datetime | None) -> StoreSettingsResponse:
        return cls.model_validate({**(payload or {}), "updatedAt": updated_at})


class PaymentMethodCreateRequest(CamelModel):
    id: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=255)
    type: str = Field(min_length=1, max_length=32)
    is_active: bool = True
    description: str | None = None
