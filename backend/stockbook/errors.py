# Overview: Typed failures raised by the catalog, sales and reporting services.

from __future__ import annotations

from decimal import Decimal

from .validation import ConflictError, ValidationError  # noqa: F401  (re-exported)


class StockbookError(Exception):
    """Base for service-layer failures. `details` is safe to return to API clients."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class NotFoundError(StockbookError):
    """Product or transaction absent, or retired where only active rows qualify."""


class InvalidStateError(StockbookError):
    """Record would violate a model invariant (e.g. container size vs measurement type)."""


def _qty(value) -> str:
    """Decimal("2.000") -> "2", Decimal("7.500") -> "7.5"."""
    if isinstance(value, Decimal):
        return format(value.normalize(), "f")
    return str(value)


class InsufficientStockError(StockbookError):
    """A sale line asks for more than the product has on hand."""
    def __init__(
        self,
        *,
        product_id: int,
        product_name: str,
        available: Decimal,
        requested: Decimal,
        line_index: int | None = None,
    ):
        message = f"Insufficient stock for {product_name}. Available: {_qty(available)}"
        if line_index is not None:
            message = f"Line {line_index + 1}: {message}"
        super().__init__(
            message,
            details={
                "product_id": product_id,
                "product_name": product_name,
                "available": _qty(available),
                "requested": _qty(requested),
                "line_index": line_index,
            },
        )
        self.product_id = product_id
        self.product_name = product_name
        self.available = available
        self.requested = requested
        self.line_index = line_index
