"""
Error taxonomy for the inventory core.

These exceptions are framework-agnostic: services raise them, and main.py maps
them onto HTTP responses through a single exception handler. Each class carries
the status code its HTTP rendering should use plus a short machine-readable code.
"""
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError

logger = logging.getLogger(__name__)


class InventoryError(Exception):
    """Base class for every business error raised by the core."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFoundError(InventoryError):
    """Referenced entity (product, location, order, item...) does not exist."""

    status_code = 404
    code = "NOT_FOUND"


class InvalidArgumentError(InventoryError):
    """Malformed business input, e.g. a zero quantity or identical locations."""

    status_code = 400
    code = "INVALID_ARGUMENT"


class BadRequestError(InventoryError):
    """Semantically invalid request, e.g. fulfilling more than was ordered."""

    status_code = 400
    code = "BAD_REQUEST"


class InvalidTransitionError(InventoryError):
    """Manual order status change not allowed from the current status."""

    status_code = 400
    code = "INVALID_TRANSITION"


class ConflictError(InventoryError):
    """Operation not permitted in the current state of the data."""

    status_code = 409
    code = "CONFLICT"


class InsufficientStockError(ConflictError):
    """An outbound movement would drive a stock level below zero."""

    code = "INSUFFICIENT_STOCK"

    def __init__(self, product_id: int, location_id: int, requested: int, available: int,
                 product_label: Optional[str] = None):
        label = product_label or f"product ID {product_id}"
        super().__init__(
            f"Insufficient stock for {label} at location ID {location_id}. "
            f"Requested: {requested}, Available: {available}"
        )
        self.product_id = product_id
        self.location_id = location_id
        self.requested = requested
        self.available = available


class InternalError(InventoryError):
    """Unexpected persistence failure that maps onto no other kind."""


# Translate a database constraint violation into the nearest business error
def translate_integrity_error(exc: IntegrityError) -> InventoryError:
    message = str(exc.orig if exc.orig is not None else exc).lower()

    if "foreign key" in message or "foreign_key" in message:
        logger.warning("Foreign key violation: %s", message)
        return NotFoundError("Referenced record not found.")
    if "unique" in message or "duplicate key" in message:
        logger.warning("Unique constraint violation: %s", message)
        return ConflictError("A record with the same unique value already exists.")

    logger.error("Unexpected integrity error: %s", message)
    return InternalError("Database constraint violation.")
