"""Errors raised by the cart services.

Business-rule rejections (inactive coupon, minimum not met ...) are returned
as result values, never raised.
"""


class CartError(Exception):
    """Base class for cart failures."""


class CartValidationError(CartError):
    """Input rejected before any database call."""


class CartStoreError(CartError):
    """The database could not be reached or refused the operation."""

    def __init__(self, message: str, *, cause: Exception = None) -> None:
        super().__init__(message)
        self.cause = cause
