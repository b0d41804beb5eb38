from app.db.repo.catalog_repo import CatalogRepo
from app.db.repo.codes_repo import CodesRepo
from app.db.repo.inventory_audit_runs_repo import InventoryAuditRunsRepo
from app.db.repo.orders_repo import OrdersRepo
from app.db.repo.products_repo import ProductsRepo
from app.db.repo.reviews_repo import ReviewsRepo
from app.db.repo.store_settings_repo import StoreSettingsRepo
from app.db.repo.users_repo import UsersRepo

__all__ = [
    "CatalogRepo",
    "CodesRepo",
    "InventoryAuditRunsRepo",
    "OrdersRepo",
    "ProductsRepo",
    "ReviewsRepo",
    "StoreSettingsRepo",
    "UsersRepo",
]
