from __future__ import annotations

from datetime import datetime, timezone

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import Settings
from app.db.repo.inventory_audit_runs_repo import InventoryAuditRunsRepo
from app.services.alerts import send_ops_alert
from app.store.inventory.projection import InventoryProjection
from app.workers.asyncio_runner import run_async_job
from app.workers.celery_app import celery_app

logger = structlog.get_logger(__name__)
AUDIT_STATUS_OK = "OK"
AUDIT_STATUS_DIFF = "DIFF"
ALERT_FAULT_SAMPLE_SIZE = 20


async def run_inventory_integrity_audit_async(
    session_factory: async_sessionmaker[AsyncSession],
    *,
    settings: Settings | None = None,
) -> dict[str, object]:
    started_at = datetime.now(timezone.utc)
    async with session_factory.begin() as session:
        products_checked, faults = await InventoryProjection.check_integrity(session)
        status = AUDIT_STATUS_DIFF if faults else AUDIT_STATUS_OK
        run = await InventoryAuditRunsRepo.create(
            session,
            started_at=started_at,
            finished_at=datetime.now(timezone.utc),
            status=status,
            products_checked=products_checked,
            fault_count=len(faults),
        )

    result: dict[str, object] = {
        "audit_run_id": run.id,
        "status": status,
        "products_checked": products_checked,
        "fault_count": len(faults),
    }
    if not faults:
        logger.info("inventory_integrity_audit_finished", **result)
        return result

    sample = [
        {
            "product_id": fault.product_id,
            "stock": fault.stock,
            "available_codes": fault.available_codes,
            "embedded_codes": fault.embedded_codes,
            "drift": fault.drift,
        }
        for fault in faults[:ALERT_FAULT_SAMPLE_SIZE]
    ]
    logger.warning("inventory_integrity_fault_detected", faults=sample, **result)
    await send_ops_alert(
        event="inventory_integrity_fault_detected",
        payload={**result, "faults": sample},
        settings=settings,
    )
    return result


@celery_app.task(name="app.workers.tasks.inventory_integrity.run_inventory_integrity_audit")
def run_inventory_integrity_audit() -> dict[str, object]:
    return run_async_job(run_inventory_integrity_audit_async)


celery_app.conf.beat_schedule = celery_app.conf.beat_schedule or {}
celery_app.conf.beat_schedule.update(
    {
        "inventory-integrity-audit-every-15-minutes": {
            "task": "app.workers.tasks.inventory_integrity.run_inventory_integrity_audit",
            "schedule": 900.0,
            "options": {"queue": "q_normal"},
        },
    }
)
