"""
Domain layer - Pure business logic without external dependencies.
"""

from .exceptions import (
    ErrorKind,
    InvalidConfiguration,
    InvalidInterval,
    OverlapConflict,
    ReservationError,
    ReservationNotFound,
    StorageError,
    Unauthorized,
)
from .models import Reservation, Slot, SlotWindow, TimeInterval
from .overlap_checker import OverlapChecker, OverlapResult, intervals_overlap
from .slot_generator import SlotGenerator
from .validation import ReservationValidator, ValidationResult

__all__ = [
    "ErrorKind",
    "InvalidConfiguration",
    "InvalidInterval",
    "OverlapConflict",
    "ReservationError",
    "ReservationNotFound",
    "StorageError",
    "Unauthorized",
    "Reservation",
    "Slot",
    "SlotWindow",
    "TimeInterval",
    "OverlapChecker",
    "OverlapResult",
    "intervals_overlap",
    "SlotGenerator",
    "ReservationValidator",
    "ValidationResult",
]
