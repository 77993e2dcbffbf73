"""
Custom exception classes for better error handling.
Provides specific error types instead of generic exceptions.
"""


class StoreError(Exception):
    """Base exception for data store operations."""

    pass


class DuplicateRecordError(StoreError):
    """Raised when an insert violates a uniqueness constraint."""

    pass


class RecordNotFoundError(StoreError):
    """Raised when an update or delete targets a missing record."""

    pass


class ValidationError(Exception):
    """Raised when input validation or a booking rule fails."""

    pass


class ConfirmationRequiredError(ValidationError):
    """Raised when a destructive operation is attempted without confirmation."""

    pass
