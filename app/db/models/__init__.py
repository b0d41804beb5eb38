from app.db.models.base import Base
from app.db.models.categories import Category
from app.db.models.codes import Code
from app.db.models.inventory_audit_runs import InventoryAuditRun
from app.db.models.orders import Order
from app.db.models.payment_methods import PaymentMethod
from app.db.models.products import Product
from app.db.models.reviews import Review
from app.db.models.store_settings import StoreSettings
from app.db.models.users import User

__all__ = [
    "Base",
    "Category",
    "Code",
    "InventoryAuditRun",
    "Order",
    "PaymentMethod",
    "Product",
    "Review",
    "StoreSettings",
    "User",
]
