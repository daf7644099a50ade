"""
Core business logic for deriving bookable slots of a day.

Pure domain logic without any external dependencies (no storage, no I/O).
Every call recomputes its result from the reservations it is given, so the
same inputs always yield the same slots.
"""

from datetime import date, time
from typing import Iterable, Iterator, List, Optional

from .exceptions import InvalidInterval
from .models import Reservation, Slot, SlotWindow, TimeInterval, format_time, minutes_of, time_from_minutes
from .overlap_checker import OverlapChecker, intervals_overlap


class SlotGenerator:
    """
    Splits the configured day window into fixed-size slots and marks each
    one as available or booked.

    Algorithm:
    1. Keep only the reservations of the requested date
    2. Walk the window in ``step_minutes`` increments
    3. Emit ``[start, start + step)`` while it still fits before ``day_end``
    4. A slot is available when the overlap checker finds no conflict,
       ignoring the reservation named by ``exclude_id``
    """

    def __init__(self, window: SlotWindow, checker: OverlapChecker | None = None):
        self.window = window
        self.checker = checker or OverlapChecker()

    def iter_slots(
        self,
        day: date,
        reservations: Iterable[Reservation],
        exclude_id: Optional[str] = None,
    ) -> Iterator[Slot]:
        """
        Lazily yield the slots of ``day`` ordered by start time.

        Args:
            day: Date the slots are generated for
            reservations: Existing reservations; other dates are ignored
            exclude_id: Reservation that should not block any slot, used when
                the owner edits it and may re-select its current time

        Yields:
            Slot objects, one per full step of the window
        """
        same_day = self._for_day(day, reservations)
        step = self.window.step_minutes
        day_end = minutes_of(self.window.day_end)
        slot_start = minutes_of(self.window.day_start)

        while slot_start + step <= day_end:
            interval = TimeInterval(
                start=time_from_minutes(slot_start),
                end=time_from_minutes(slot_start + step),
            )
            yield Slot(
                interval=interval,
                available=not self.checker.has_conflict(interval, same_day, exclude_id),
            )
            slot_start += step

    def generate(
        self,
        day: date,
        reservations: Iterable[Reservation],
        exclude_id: Optional[str] = None,
    ) -> List[Slot]:
        """Materialised form of ``iter_slots``."""
        return list(self.iter_slots(day, reservations, exclude_id))

    def free_ranges(
        self,
        day: date,
        reservations: Iterable[Reservation],
        exclude_id: Optional[str] = None,
    ) -> List[TimeInterval]:
        """
        Subtract booked time from the day window, yielding free stretches.

        Example:
        Window: 08:00 - 20:00
        Booked: [09:00-12:00, 12:00-13:00, 15:00-16:00]
        Result: [08:00-09:00, 13:00-15:00, 16:00-20:00]
        """
        window = self.window.as_interval()
        busy = sorted(
            (
                reservation.interval
                for reservation in self._for_day(day, reservations)
                if reservation.id != exclude_id and intervals_overlap(window, reservation.interval)
            ),
            key=lambda interval: interval.start,
        )

        free: List[TimeInterval] = []
        cursor = window.start

        for interval in busy:
            busy_start = max(interval.start, window.start)
            busy_end = min(interval.end, window.end)

            if cursor < busy_start:
                free.append(TimeInterval(start=cursor, end=busy_start))

            cursor = max(cursor, busy_end)

        if cursor < window.end:
            free.append(TimeInterval(start=cursor, end=window.end))

        return free

    def end_options(
        self,
        day: date,
        start: time,
        reservations: Iterable[Reservation],
        exclude_id: Optional[str] = None,
    ) -> List[time]:
        """
        List the grid end times a booking starting at ``start`` can use.

        Stops at the first end time that would run into another reservation.

        Raises:
            InvalidInterval: If ``start`` is not a slot start of the window
        """
        step = self.window.step_minutes
        day_end = minutes_of(self.window.day_end)
        start_minutes = minutes_of(start)

        if not self.window.is_on_grid(start) or start_minutes + step > day_end:
            raise InvalidInterval(f"{format_time(start)} is not a bookable start time.")

        same_day = self._for_day(day, reservations)
        options: List[time] = []
        end_minutes = start_minutes + step

        while end_minutes <= day_end:
            end = time_from_minutes(end_minutes)
            if self.checker.has_conflict(TimeInterval(start=start, end=end), same_day, exclude_id):
                break
            options.append(end)
            end_minutes += step

        return options

    @staticmethod
    def _for_day(day: date, reservations: Iterable[Reservation]) -> List[Reservation]:
        return [reservation for reservation in reservations if reservation.date == day]
