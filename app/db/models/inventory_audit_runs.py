from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class InventoryAuditRun(Base):
    __tablename__ = "inventory_audit_runs"
    __table_args__ = (CheckConstraint("status IN ('OK','DIFF')", name="ck_inventory_audit_runs_status"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    finished_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(String(8), nullable=False)
    products_checked: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    fault_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
