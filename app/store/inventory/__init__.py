from app.store.inventory.projection import InventoryProjection

__all__ = ["InventoryProjection"]
