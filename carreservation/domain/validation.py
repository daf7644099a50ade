"""
Create/update gate for reservations.

Storage adapters and the service layer both call ``ReservationValidator``
before a reservation is written; there is no path that persists a
reservation without it.
"""

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional, Tuple

from .exceptions import ErrorKind, InvalidInterval, OverlapConflict, ReservationError
from .models import Reservation, TimeInterval, parse_date
from .overlap_checker import OverlapChecker

PENDING_ID = ""


@dataclass(frozen=True)
class ValidationResult:
    """Accepted, or rejected with the error that explains why."""
    accepted: bool
    error: Optional[ReservationError] = None

    @classmethod
    def accept(cls) -> "ValidationResult":
        return cls(accepted=True)

    @classmethod
    def reject(cls, error: ReservationError) -> "ValidationResult":
        return cls(accepted=False, error=error)

    @property
    def kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error else None

    @property
    def message(self) -> Optional[str]:
        return self.error.message if self.error else None

    @property
    def conflicting_ids(self) -> Tuple[str, ...]:
        if isinstance(self.error, OverlapConflict):
            return self.error.conflicting_ids
        return ()

    def raise_for_error(self) -> None:
        """Raise the rejection error, if any."""
        if self.error is not None:
            raise self.error


class ReservationValidator:
    """
    Decides whether a candidate reservation may be stored.

    ``start < end`` already holds for every candidate, since ``TimeInterval``
    refuses to construct anything else.

    Steps:
    1. Only reservations of the same date are considered
    2. The candidate's own stored version is excluded when it is an update
    3. Any remaining overlap rejects the candidate with ``OverlapConflict``
    """

    def __init__(self, checker: OverlapChecker | None = None):
        self.checker = checker or OverlapChecker()

    def validate(
        self,
        candidate: Reservation,
        existing: Iterable[Reservation],
        exclude_id: Optional[str] = None,
    ) -> ValidationResult:
        """
        Validate a candidate against the reservations currently stored.

        Args:
            candidate: Reservation to create or the updated state of one
            existing: Current reservations; other dates are ignored
            exclude_id: Reservation to ignore; defaults to ``candidate.id``
                so an update never conflicts with itself

        Returns:
            ValidationResult
        """
        if exclude_id is None and candidate.id != PENDING_ID:
            exclude_id = candidate.id

        same_day = [reservation for reservation in existing if reservation.date == candidate.date]
        result = self.checker.check(candidate.interval, same_day, exclude_id)

        if result.has_conflict:
            return ValidationResult.reject(OverlapConflict(result.conflicting_ids))

        return ValidationResult.accept()

    def validate_request(
        self,
        day: str | date,
        start_time: str,
        end_time: str,
        owner_id: str,
        existing: Iterable[Reservation],
        reservation_id: Optional[str] = None,
    ) -> ValidationResult:
        """
        Validate raw wire values (ISO date, ``HH:MM`` times).

        A malformed date, or malformed or inverted times, are reported as
        ``InvalidInterval`` rejections instead of being raised.
        """
        try:
            candidate = build_candidate(day, start_time, end_time, owner_id, reservation_id)
        except InvalidInterval as exc:
            return ValidationResult.reject(exc)

        return self.validate(candidate, existing)


def build_candidate(
    day: str | date,
    start_time: str,
    end_time: str,
    owner_id: str,
    reservation_id: Optional[str] = None,
) -> Reservation:
    """
    Assemble an unsaved reservation from wire values.

    Raises:
        InvalidInterval: If the date or times are malformed, or the times
            are not increasing
    """
    return Reservation(
        id=reservation_id or PENDING_ID,
        owner_id=owner_id,
        date=parse_date(day) if isinstance(day, str) else day,
        interval=TimeInterval.parse(start_time, end_time),
    )
