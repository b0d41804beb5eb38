from app.store.codes.service import CodeStore

__all__ = ["CodeStore"]
