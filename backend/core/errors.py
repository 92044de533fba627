"""
core/errors.py: Typed failures raised by the storage layer.

Every backend raises these (never bare SQLAlchemy or KeyError exceptions) so
callers can tell "not found" from "rejected" from "infrastructure failure".
The app factory maps status_code onto the HTTP response.
"""


class InventoryError(Exception):
    """Base class for all storage-layer failures."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(InventoryError):
    status_code = 404


class DuplicateIdentifier(InventoryError):
    status_code = 409


class CapacityExceeded(InventoryError):
    status_code = 400

    def __init__(self, message: str, capacity: int = None, requested: int = None, existing: int = None):
        super().__init__(message)
        self.capacity = capacity
        self.requested = requested
        self.existing = existing


class ReferentialConflict(InventoryError):
    status_code = 409


class ValidationError(InventoryError):
    status_code = 400


class ConnectionFailure(InventoryError):
    status_code = 503


class ConstraintViolation(InventoryError):
    """A database constraint other than uniqueness rejected the write."""

    status_code = 500
