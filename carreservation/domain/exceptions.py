"""
Domain-specific exception hierarchy for the car reservation application.

Every rejection carries an ``ErrorKind`` so callers (CLI, HTTP layers) can map
it to a response without string matching, plus a message that can be shown to
the end user as-is.
"""

from enum import Enum
from typing import Iterable, Tuple


class ErrorKind(str, Enum):
    """Machine-readable category of a rejected request."""

    INVALID_INTERVAL = "invalid_interval"
    INVALID_CONFIGURATION = "invalid_configuration"
    OVERLAP_CONFLICT = "overlap_conflict"
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    STORAGE_ERROR = "storage_error"


class ReservationError(Exception):
    """Base class for all application-level errors."""

    kind: ErrorKind = ErrorKind.STORAGE_ERROR
    default_message = "The reservation request could not be processed."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInterval(ReservationError, ValueError):
    """Raised when a time interval does not start before it ends or cannot be parsed."""

    kind = ErrorKind.INVALID_INTERVAL
    default_message = "End time must be after start time."


class InvalidConfiguration(ReservationError, ValueError):
    """Raised for unusable slot-generation parameters."""

    kind = ErrorKind.INVALID_CONFIGURATION
    default_message = "Invalid slot configuration."


class OverlapConflict(ReservationError):
    """Raised when a reservation would overlap one or more existing reservations."""

    kind = ErrorKind.OVERLAP_CONFLICT
    default_message = "The selected time slot overlaps with an existing reservation."

    def __init__(self, conflicting_ids: Iterable[str] = (), message: str | None = None):
        self.conflicting_ids: Tuple[str, ...] = tuple(conflicting_ids)
        super().__init__(message)


class ReservationNotFound(ReservationError):
    """Raised when a referenced reservation does not exist."""

    kind = ErrorKind.NOT_FOUND
    default_message = "Reservation not found."

    def __init__(self, reservation_id: str, message: str | None = None):
        self.reservation_id = reservation_id
        super().__init__(message or f"Reservation not found: {reservation_id}")


class Unauthorized(ReservationError):
    """Raised when no user is signed in or the user does not own the reservation."""

    kind = ErrorKind.UNAUTHORIZED
    default_message = "You must be logged in to manage reservations."


class StorageError(ReservationError):
    """Raised when reservation data cannot be read from or written to storage."""

    kind = ErrorKind.STORAGE_ERROR
    default_message = "Reservation storage is unavailable."
