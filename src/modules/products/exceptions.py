"""Product domain exceptions.

Raised by the ``Product`` state machine and the Service Layer when
business rules are violated.  The API layer (Views) catches these and
translates them into appropriate HTTP responses.
"""

from __future__ import annotations

from modules.core.exceptions import IllegalOperation


class ProductNotFound(Exception):
    """The requested product does not exist."""


class DuplicateSku(Exception):
    """A product with the same SKU already exists (RN-PRO-001)."""


class InactiveCategory(Exception):
    """Products cannot be placed in a deactivated category."""


class InsufficientStock(Exception):
    """Available quantity is lower than the requested reservation."""

    def __init__(self, available: int, requested: int) -> None:
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock. Available: {available}, Requested: {requested}"
        )


class InvalidStockOperation(IllegalOperation):
    """Release / confirm of more units than are currently reserved."""

    def __init__(self, message: str, reserved: int, requested: int) -> None:
        self.reserved = reserved
        self.requested = requested
        super().__init__(f"{message} Reserved: {reserved}, Requested: {requested}")


class InvalidQuantity(IllegalOperation):
    """Stock operation quantities must be positive integers."""


class InvalidStatusTransition(IllegalOperation):
    """The status change is not allowed (e.g. publishing a discontinued product)."""


class SkuImmutable(IllegalOperation):
    """The SKU of an existing product cannot be changed."""
