from __future__ import annotations

from typing import Any

import pytest
from sqlalchemy import update

from app.db.models.products import Product
from app.db.repo.inventory_audit_runs_repo import InventoryAuditRunsRepo
from app.workers.tasks import inventory_integrity
from tests.store.store_fixtures import _seed_product


@pytest.mark.asyncio
async def test_audit_records_ok_run_without_alert(session_factory, monkeypatch) -> None:
    alerts: list[dict[str, Any]] = []

    async def fake_send_ops_alert(**kwargs) -> bool:
        alerts.append(kwargs)
        return True

    monkeypatch.setattr(inventory_integrity, "send_ops_alert", fake_send_ops_alert)
    await _seed_product(session_factory, product_id="p1", codes=["A", "B"])

    result = await inventory_integrity.run_inventory_integrity_audit_async(session_factory)

    assert result["status"] == "OK"
    assert result["products_checked"] == 1
    assert result["fault_count"] == 0
    assert alerts == []

    async with session_factory() as session:
        run = await InventoryAuditRunsRepo.get_latest(session)
    assert run is not None
    assert run.id == result["audit_run_id"]
    assert run.status == "OK"


@pytest.mark.asyncio
async def test_audit_flags_drift_and_sends_alert(session_factory, monkeypatch) -> None:
    alerts: list[dict[str, Any]] = []

    async def fake_send_ops_alert(**kwargs) -> bool:
        alerts.append(kwargs)
        return True

    monkeypatch.setattr(inventory_integrity, "send_ops_alert", fake_send_ops_alert)
    await _seed_product(session_factory, product_id="p1", codes=["A"])
    await _seed_product(session_factory, product_id="p2", codes=["B"])
    async with session_factory.begin() as session:
        await session.execute(update(Product).where(Product.id == "p2").values(stock=3))

    result = await inventory_integrity.run_inventory_integrity_audit_async(session_factory)

    assert result["status"] == "DIFF"
    assert result["fault_count"] == 1
    assert len(alerts) == 1
    assert alerts[0]["event"] == "inventory_integrity_fault_detected"
    assert alerts[0]["payload"]["faults"] == [
        {"product_id": "p2", "stock": 3, "available_codes": 1, "embedded_codes": 1, "drift": 2}
    ]


def test_run_inventory_integrity_audit_task_wrapper(monkeypatch) -> None:
    def fake_run_async_job(job) -> dict[str, object]:
        assert job is inventory_integrity.run_inventory_integrity_audit_async
        return {"status": "OK", "fault_count": 0}

    monkeypatch.setattr(inventory_integrity, "run_async_job", fake_run_async_job)

    result = inventory_integrity.run_inventory_integrity_audit()
    assert result["status"] == "OK"


def test_audit_is_scheduled_on_beat() -> None:
    schedule = inventory_integrity.celery_app.conf.beat_schedule
    entry = schedule["inventory-integrity-audit-every-15-minutes"]
    assert entry["task"] == inventory_integrity.run_inventory_integrity_audit.name
    assert entry["schedule"] == 900.0
