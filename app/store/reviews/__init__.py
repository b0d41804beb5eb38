from app.store.reviews.service import ReviewService

__all__ = ["ReviewService"]
