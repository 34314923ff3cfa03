"""
Domain errors raised by the confession workflow.
"""


class ConfessionError(Exception):
    """Base class for workflow failures. Carries a human-readable message."""

    error_code = "CONFESSION_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFound(ConfessionError):
    error_code = "NOT_FOUND"


class InvalidState(ConfessionError):
    error_code = "INVALID_STATE"


class StoreError(ConfessionError):
    """Wraps an underlying persistence failure (available as __cause__)."""

    error_code = "STORE_ERROR"
