from app.store.errors import StoreError


class OrderNotFoundError(StoreError):
    pass
