from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.store_settings import STORE_SETTINGS_ROW_ID, StoreSettings


class StoreSettingsRepo:
    @staticmethod
    async def get(session: AsyncSession) -> StoreSettings | None:
        return await session.get(StoreSettings, STORE_SETTINGS_ROW_ID)

    @staticmethod
    async def get_for_update(session: AsyncSession) -> StoreSettings | None:
        stmt = select(StoreSettings).where(StoreSettings.id == STORE_SETTINGS_ROW_ID).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def upsert(
        session: AsyncSession,
        *,
        payload: dict[str, object],
        now_utc: datetime,
    ) -> StoreSettings:
        row = await StoreSettingsRepo.get_for_update(session)
        if row is None:
            row = StoreSettings(id=STORE_SETTINGS_ROW_ID, payload=payload, updated_at=now_utc)
            session.add(row)
        else:
            row.payload = payload
            row.updated_at = now_utc
        await session.flush()
        return row
