from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Integer
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base, JSONDocument

STORE_SETTINGS_ROW_ID = 1


class StoreSettings(Base):
    __tablename__ = "store_settings"
    __table_args__ = (CheckConstraint("id = 1", name="ck_store_settings_single_row"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    payload: Mapped[dict[str, object]] = mapped_column(JSONDocument, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
