from app.workers.tasks.inventory_integrity import run_inventory_integrity_audit

__all__ = ["run_inventory_integrity_audit"]
