"""
Domain-specific exception hierarchy for the booking slots engine.
"""


class BookingSlotsError(Exception):
    """Base class for all application-level errors."""


class SlotValidationError(BookingSlotsError, ValueError):
    """Raised when a request or a schedule definition is malformed."""


class StoreError(BookingSlotsError):
    """Raised when schedule data cannot be fetched, parsed, or written.

    Callers may retry; the engine never falls back to partial data.
    """
