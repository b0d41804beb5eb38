from app.store.codes import CodeStore
from app.store.fulfillment import FulfillmentService
from app.store.inventory import InventoryProjection
from app.store.orders import OrderLedger
from app.store.reviews import ReviewService

__all__ = [
    "CodeStore",
    "FulfillmentService",
    "InventoryProjection",
    "OrderLedger",
    "ReviewService",
]
