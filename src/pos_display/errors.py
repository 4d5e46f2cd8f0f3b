"""Domain errors raised by the order engine."""

from __future__ import annotations


class OrderError(RuntimeError):
    """Base class for failures surfaced to API callers."""

    status_code = 500


class ValidationError(OrderError):
    """Raised when a request is missing required data or conflicts with the order state."""

    status_code = 400


class NotFoundError(OrderError):
    """Raised when there is no active order or a referenced item/record is absent."""

    status_code = 404


class InternalError(OrderError):
    """Raised when archival fails unexpectedly."""

    status_code = 500


__all__ = ["InternalError", "NotFoundError", "OrderError", "ValidationError"]
