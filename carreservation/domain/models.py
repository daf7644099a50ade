"""
Domain models for reservations, time intervals and slots.
"""

import re
from dataclasses import dataclass
from datetime import date, time
from typing import Any, Dict, Optional

import pendulum

from .exceptions import InvalidConfiguration, InvalidInterval

_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def parse_time(value: str) -> time:
    """
    Parse a zero-padded 24-hour ``HH:MM`` string.

    Raises:
        InvalidInterval: If the value is not a valid time of day
    """
    match = _TIME_PATTERN.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise InvalidInterval(f"Invalid time '{value}'. Use the 24-hour HH:MM format.")
    return time(hour=int(match.group(1)), minute=int(match.group(2)))


def format_time(value: time) -> str:
    """Format a time as ``HH:MM``."""
    return f"{value.hour:02d}:{value.minute:02d}"


def parse_date(value: str) -> date:
    """
    Parse an ISO-8601 calendar date (``YYYY-MM-DD``).

    Raises:
        InvalidInterval: If the value is not a valid calendar date
    """
    try:
        parsed = pendulum.from_format(value.strip(), "YYYY-MM-DD")
    except (ValueError, AttributeError) as exc:
        raise InvalidInterval(f"Invalid date '{value}'. Use the YYYY-MM-DD format.") from exc
    return date(parsed.year, parsed.month, parsed.day)


def minutes_of(value: time) -> int:
    """Return the number of minutes since midnight."""
    return value.hour * 60 + value.minute


def time_from_minutes(total_minutes: int) -> time:
    """Inverse of ``minutes_of`` for values inside a single day."""
    return time(hour=total_minutes // 60, minute=total_minutes % 60)


@dataclass(frozen=True)
class TimeInterval:
    """
    Half-open time-of-day range ``[start, end)``.

    Invariant: start must be before end.
    """
    start: time
    end: time

    def __post_init__(self):
        if self.start >= self.end:
            raise InvalidInterval(
                f"End time {format_time(self.end)} must be after start time {format_time(self.start)}."
            )

    @classmethod
    def parse(cls, start: str, end: str) -> "TimeInterval":
        """Build an interval from two ``HH:MM`` strings."""
        return cls(start=parse_time(start), end=parse_time(end))

    def contains(self, other: "TimeInterval") -> bool:
        """Check if another interval lies completely inside this one."""
        return self.start <= other.start and other.end <= self.end

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return minutes_of(self.end) - minutes_of(self.start)

    def to_wire(self) -> Dict[str, str]:
        return {"start_time": format_time(self.start), "end_time": format_time(self.end)}

    def __str__(self) -> str:
        return f"{format_time(self.start)} - {format_time(self.end)}"


@dataclass(frozen=True)
class Reservation:
    """
    A booking of the car for one time interval on one date.

    Owned by exactly one user; ``id`` is assigned by the storage layer.
    """
    id: str
    owner_id: str
    date: date
    interval: TimeInterval
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def start_time(self) -> time:
        return self.interval.start

    @property
    def end_time(self) -> time:
        return self.interval.end

    def to_dict(self) -> Dict[str, str]:
        payload = {
            "id": self.id,
            "owner_id": self.owner_id,
            "date": self.date.isoformat(),
            **self.interval.to_wire(),
        }
        if self.created_at is not None:
            payload["created_at"] = self.created_at
        if self.updated_at is not None:
            payload["updated_at"] = self.updated_at
        return payload

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Reservation":
        """
        Build a reservation from its wire representation.

        Raises:
            KeyError: If a required field is missing
            InvalidInterval: If the date or times are malformed
        """
        return Reservation(
            id=str(data["id"]),
            owner_id=str(data["owner_id"]),
            date=parse_date(str(data["date"])),
            interval=TimeInterval.parse(str(data["start_time"]), str(data["end_time"])),
            created_at=(str(data["created_at"]) if data.get("created_at") is not None else None),
            updated_at=(str(data["updated_at"]) if data.get("updated_at") is not None else None),
        )


@dataclass(frozen=True)
class Slot:
    """
    A fixed-size candidate booking window, derived and never stored.
    """
    interval: TimeInterval
    available: bool

    @property
    def start(self) -> time:
        return self.interval.start

    @property
    def end(self) -> time:
        return self.interval.end

    def format_display(self) -> str:
        """
        Format the slot for display.
        Format: HH:MM – HH:MM (available|booked)
        """
        status = "available" if self.available else "booked"
        return f"{format_time(self.start)} – {format_time(self.end)} ({status})"


@dataclass(frozen=True)
class SlotWindow:
    """
    The bookable part of a day and the grid it is split into.

    If ``step_minutes`` does not divide the window evenly, the trailing partial
    step is not offered as a slot.
    """
    day_start: time
    day_end: time
    step_minutes: int

    def __post_init__(self):
        if self.day_start >= self.day_end:
            raise InvalidConfiguration(
                f"Day start {format_time(self.day_start)} must be before day end {format_time(self.day_end)}."
            )
        if self.step_minutes <= 0:
            raise InvalidConfiguration(f"Slot step must be positive, got {self.step_minutes} minutes.")

    def as_interval(self) -> TimeInterval:
        return TimeInterval(start=self.day_start, end=self.day_end)

    def is_on_grid(self, value: time) -> bool:
        """Check if a time is one of the window's grid points."""
        offset = minutes_of(value) - minutes_of(self.day_start)
        return 0 <= offset <= self.span_minutes() and offset % self.step_minutes == 0

    def span_minutes(self) -> int:
        return minutes_of(self.day_end) - minutes_of(self.day_start)
