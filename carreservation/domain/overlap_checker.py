"""
Overlap detection between a candidate interval and existing reservations.

This is the one place where "do two bookings collide" is decided; slot
generation, request validation and the storage adapters all go through it.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from .models import Reservation, TimeInterval


def intervals_overlap(first: TimeInterval, second: TimeInterval) -> bool:
    """
    Return True when two half-open intervals share at least one instant.

    ``[a0, a1)`` and ``[b0, b1)`` overlap iff ``a0 < b1 and b0 < a1``, so
    touching boundaries (09:00-12:00 and 12:00-13:00) do not overlap.
    """
    return first.start < second.end and second.start < first.end


@dataclass(frozen=True)
class OverlapResult:
    """Outcome of an overlap check."""
    has_conflict: bool
    conflicting_ids: Tuple[str, ...] = ()


class OverlapChecker:
    """
    Checks a candidate interval against a set of reservations.

    The caller is responsible for passing only reservations of the
    candidate's date. ``exclude_id`` skips one reservation so that an edit
    is not reported as colliding with the booking it replaces.
    """

    def check(
        self,
        candidate: TimeInterval,
        existing: Iterable[Reservation],
        exclude_id: Optional[str] = None,
    ) -> OverlapResult:
        conflicts: List[Reservation] = [
            reservation
            for reservation in existing
            if reservation.id != exclude_id and intervals_overlap(candidate, reservation.interval)
        ]

        if not conflicts:
            return OverlapResult(has_conflict=False)

        conflicts.sort(key=lambda r: (r.interval.start, r.id))
        return OverlapResult(
            has_conflict=True,
            conflicting_ids=tuple(r.id for r in conflicts),
        )

    def has_conflict(
        self,
        candidate: TimeInterval,
        existing: Iterable[Reservation],
        exclude_id: Optional[str] = None,
    ) -> bool:
        """Shortcut for ``check(...).has_conflict``."""
        return any(
            reservation.id != exclude_id and intervals_overlap(candidate, reservation.interval)
            for reservation in existing
        )
