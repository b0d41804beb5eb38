from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base

CODE_STATUS_AVAILABLE = "available"
CODE_STATUS_SOLD = "sold"
CODE_STATUSES = (CODE_STATUS_AVAILABLE, CODE_STATUS_SOLD)


class Code(Base):
    __tablename__ = "codes"
    __table_args__ = (
        CheckConstraint("status IN ('available','sold')", name="ck_codes_status"),
        UniqueConstraint("product_id", "code", name="uq_codes_product_code"),
        Index("idx_codes_product_status_created", "product_id", "status", "created_at"),
        Index("idx_codes_order", "order_id"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    product_id: Mapped[str] = mapped_column(String(64), nullable=False)
    code: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=CODE_STATUS_AVAILABLE)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    sold_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    sold_to: Mapped[str | None] = mapped_column(String(64), nullable=True)
    order_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
