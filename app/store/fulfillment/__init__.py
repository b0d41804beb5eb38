from app.store.fulfillment.service import FulfillmentService

__all__ = ["FulfillmentService"]
