"""
Domain error taxonomy.

Every error carries a stable ``code`` which the API layer maps to an HTTP status.
"""
from __future__ import annotations

from uuid import UUID


class ShopError(Exception):
    """Base error for expected, user-facing failures."""

    code = "SHOP_ERROR"

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        if code is not None:
            self.code = code
        super().__init__(self.message)


class UnauthenticatedError(ShopError):
    code = "UNAUTHENTICATED"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class UnauthorizedError(ShopError):
    code = "FORBIDDEN"

    def __init__(self, message: str = "Not allowed"):
        super().__init__(message)


class ValidationError(ShopError):
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, fields: dict[str, str] | None = None):
        self.fields = fields or {}
        super().__init__(message)


class EmptyCartError(ShopError):
    code = "EMPTY_CART"

    def __init__(self, message: str = "Cart is empty"):
        super().__init__(message)


class InsufficientStockError(ShopError):
    """Requested quantity of a product exceeds its available stock."""

    code = "INSUFFICIENT_STOCK"

    def __init__(
        self,
        product_id: UUID,
        product_name: str = "",
        requested: int | None = None,
        available: int | None = None,
    ):
        self.product_id = product_id
        self.product_name = product_name
        self.requested = requested
        self.available = available
        super().__init__(f"Insufficient stock for {product_name or product_id}")


class InvalidStatusTransitionError(ShopError):
    code = "INVALID_STATE"

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot change order status from {current} to {requested}")


class NotFoundError(ShopError):
    code = "NOT_FOUND"


class StorageError(ShopError):
    """Persistence failure. Raised only after the transaction rolled back."""

    code = "INTERNAL_ERROR"

    def __init__(self, message: str = "Storage failure"):
        super().__init__(message)
