from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base, JSONDocument

ORDER_STATUS_COMPLETED = "completed"


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("total >= 0", name="ck_orders_total_non_negative"),
        Index("idx_orders_user_date", "user_id", "date"),
        Index("idx_orders_paypal_order", "paypal_order_id"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    items: Mapped[list[dict[str, object]]] = mapped_column(JSONDocument, nullable=False)
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    delivery_codes: Mapped[dict[str, list[str]]] = mapped_column(JSONDocument, nullable=False)
    payment_method: Mapped[str] = mapped_column(String(64), nullable=False)
    paypal_order_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
