from app.store.errors import StoreError


class FulfillmentError(StoreError):
    pass


class InsufficientCodesError(FulfillmentError):
    def __init__(
        self,
        product_id: str,
        *,
        requested: int,
        available: int,
        product_name: str | None = None,
    ) -> None:
        super().__init__(product_id)
        self.product_id = product_id
        self.requested = requested
        self.available = available
        self.product_name = product_name


class OutOfStockError(InsufficientCodesError):
    pass


class CodeReservationConflictError(FulfillmentError):
    pass


class FulfillmentTimeoutError(FulfillmentError):
    pass


class FulfillmentAbortedError(FulfillmentError):
    pass
