from app.store.orders.service import OrderLedger

__all__ = ["OrderLedger"]
