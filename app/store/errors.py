class StoreError(Exception):
    pass


class StoreValidationError(StoreError):
    pass


class ProductNotFoundError(StoreError):
    def __init__(self, product_id: str, *, product_name: str | None = None) -> None:
        super().__init__(product_id)
        self.product_id = product_id
        self.product_name = product_name
