# estore/errors.py
from typing import Optional

# Every error the store raises on purpose. The HTTP layer maps status_code
# straight onto the response; nothing else decides codes.


class StoreError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(StoreError):
    status_code = 400
    default_message = "All fields are required"


class UnauthorizedError(StoreError):
    status_code = 401
    default_message = "Not authenticated"


class ForbiddenError(StoreError):
    status_code = 403
    default_message = "Forbidden"


class NotFoundError(StoreError):
    status_code = 404

    def __init__(self, entity: str, message: Optional[str] = None):
        self.entity = entity
        super().__init__(message or f"{entity.capitalize()} not found")


class ConflictError(StoreError):
    status_code = 409
    default_message = "Conflict"


class InsufficientStockError(ConflictError):
    def __init__(self, product_id: int, requested: int, available: int):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(f"Not enough stock (requested {requested}, available {available})")


class InternalError(StoreError):
    status_code = 500
