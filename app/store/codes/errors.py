from app.store.errors import StoreError


class CodeError(StoreError):
    pass


class CodeNotFoundError(CodeError):
    pass


class InvalidCodeStatusError(CodeError):
    pass
