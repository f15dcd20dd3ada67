"""Typed failures raised by the order-and-inventory core."""

from typing import Any


class OrderCoreError(Exception):
    """Base class for all core errors."""

    code = "core_error"
    retryable = False

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        """Serialize the error for a tool response."""
        return {
            "success": False,
            "error": self.code,
            "message": self.message,
            "retryable": self.retryable,
            **self.details,
        }


class NotFoundError(OrderCoreError):
    """Product or order identifier could not be resolved."""

    code = "not_found"


class InsufficientStockError(OrderCoreError):
    """Reservation exceeds the quantity on hand."""

    code = "insufficient_stock"

    def __init__(self, sku: str, requested: int, available: int):
        super().__init__(
            f"Insufficient stock for {sku}: requested {requested}, available {available}",
            sku=sku,
            requested=requested,
            available=available,
        )
        self.sku = sku
        self.requested = requested
        self.available = available


class InvalidTransitionError(OrderCoreError):
    """Status change not allowed from the order's current status."""

    code = "invalid_transition"

    def __init__(self, order_number: str, current: str, requested: str, allowed: list[str]):
        super().__init__(
            f"Invalid status transition from '{current}' to '{requested}'",
            order_number=order_number,
            current_status=current,
            requested_status=requested,
            valid_transitions=allowed,
        )
        self.current = current
        self.requested = requested
        self.allowed = allowed


class ValidationError(OrderCoreError):
    """Malformed or out-of-range input."""

    code = "validation_error"


class ProductInUseError(ValidationError):
    """Product still referenced by open orders."""

    code = "product_in_use"


class TransientStoreError(OrderCoreError):
    """Store timeout or unavailability; safe for the caller to retry."""

    code = "transient"
    retryable = True
