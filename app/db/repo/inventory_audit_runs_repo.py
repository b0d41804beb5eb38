from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.inventory_audit_runs import InventoryAuditRun


class InventoryAuditRunsRepo:
    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        started_at: datetime,
        finished_at: datetime | None,
        status: str,
        products_checked: int,
        fault_count: int,
    ) -> InventoryAuditRun:
        run = InventoryAuditRun(
            started_at=started_at,
            finished_at=finished_at,
            status=status,
            products_checked=products_checked,
            fault_count=fault_count,
        )
        session.add(run)
        await session.flush()
        return run

    @staticmethod
    async def get_latest(session: AsyncSession) -> InventoryAuditRun | None:
        stmt = select(InventoryAuditRun).order_by(InventoryAuditRun.id.desc()).limit(1)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()
