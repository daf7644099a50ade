"""
Tests for slot generator.
"""

from datetime import date, time

import pytest

from carreservation.domain.exceptions import InvalidInterval
from carreservation.domain.models import Reservation, SlotWindow, TimeInterval
from carreservation.domain.overlap_checker import intervals_overlap
from carreservation.domain.slot_generator import SlotGenerator

DAY = date(2025, 3, 1)


def _reservation(reservation_id: str, start: str, end: str, day: date = DAY) -> Reservation:
    return Reservation(
        id=reservation_id,
        owner_id="alice",
        date=day,
        interval=TimeInterval.parse(start, end),
    )


def _generator(start: time = time(8, 0), end: time = time(20, 0), step: int = 60) -> SlotGenerator:
    return SlotGenerator(SlotWindow(day_start=start, day_end=end, step_minutes=step))


def _starts(slots):
    return [f"{slot.start.hour:02d}:{slot.start.minute:02d}" for slot in slots]


class TestSlotGenerator:
    """Tests for SlotGenerator."""

    def test_hourly_slots_with_one_reservation(self):
        """Test a full day with a 09:00-12:00 booking."""
        generator = _generator()

        slots = generator.generate(DAY, [_reservation("r1", "09:00", "12:00")])

        assert _starts(slots) == [f"{h:02d}:00" for h in range(8, 20)]
        booked = [start for start, slot in zip(_starts(slots), slots) if not slot.available]
        assert booked == ["09:00", "10:00", "11:00"]
        assert slots[-1].end == time(20, 0)

    def test_editing_frees_own_slots(self):
        """Excluding the edited reservation makes its slots available again."""
        generator = _generator()
        reservations = [_reservation("r1", "09:00", "12:00")]

        slots = generator.generate(DAY, reservations, exclude_id="r1")

        assert all(slot.available for slot in slots)

    def test_editing_keeps_other_reservations_booked(self):
        """Only the excluded reservation is ignored."""
        generator = _generator()
        reservations = [
            _reservation("r1", "09:00", "12:00"),
            _reservation("r2", "14:00", "15:00"),
        ]

        slots = generator.generate(DAY, reservations, exclude_id="r1")
        booked = [slot for slot in slots if not slot.available]

        assert len(booked) == 1
        assert booked[0].start == time(14, 0)

    def test_no_reservations(self):
        """Test that every slot is free when nothing is booked."""
        slots = _generator().generate(DAY, [])

        assert len(slots) == 12
        assert all(slot.available for slot in slots)

    def test_finer_step(self):
        """Test 30-minute granularity around a partial-hour booking."""
        generator = _generator(start=time(9, 0), end=time(12, 0), step=30)

        slots = generator.generate(DAY, [_reservation("r1", "09:45", "10:15")])

        assert _starts(slots) == ["09:00", "09:30", "10:00", "10:30", "11:00", "11:30"]
        assert [slot.available for slot in slots] == [True, False, False, True, True, True]

    def test_partial_last_step_is_dropped(self):
        """A trailing step that does not fit before day end is not emitted."""
        generator = _generator(start=time(8, 0), end=time(10, 30), step=60)

        slots = generator.generate(DAY, [])

        assert _starts(slots) == ["08:00", "09:00"]
        assert slots[-1].end == time(10, 0)

    def test_other_dates_are_ignored(self):
        """Reservations of another date never block slots."""
        generator = _generator()
        other_day = _reservation("r1", "09:00", "12:00", day=date(2025, 3, 2))

        slots = generator.generate(DAY, [other_day])

        assert all(slot.available for slot in slots)

    def test_availability_matches_overlap_test(self):
        """Every slot's flag is the negation of an overlap with the remaining reservations."""
        generator = _generator(step=30)
        reservations = [
            _reservation("a", "08:15", "09:00"),
            _reservation("b", "11:00", "13:30"),
            _reservation("c", "19:45", "20:00"),
        ]

        for exclude in (None, "a", "b"):
            remaining = [r for r in reservations if r.id != exclude]
            for slot in generator.generate(DAY, reservations, exclude_id=exclude):
                expected = not any(intervals_overlap(slot.interval, r.interval) for r in remaining)
                assert slot.available == expected

    def test_generation_is_idempotent(self):
        """Generating twice from the same input yields the same slots."""
        generator = _generator()
        reservations = [_reservation("r1", "09:00", "12:00")]

        assert generator.generate(DAY, reservations) == generator.generate(DAY, reservations)

    def test_iter_slots_is_restartable(self):
        """Each call to iter_slots starts again from the first slot."""
        generator = _generator()
        reservations = [_reservation("r1", "09:00", "12:00")]

        first = generator.iter_slots(DAY, reservations)
        assert next(first).start == time(8, 0)
        assert next(first).start == time(9, 0)

        second = generator.iter_slots(DAY, reservations)
        assert next(second).start == time(8, 0)
        assert len(list(first)) == 10


class TestFreeRanges:
    """Tests for free range derivation."""

    def test_free_ranges_between_bookings(self):
        """Test subtracting bookings from the window."""
        generator = _generator()
        reservations = [
            _reservation("r1", "09:00", "12:00"),
            _reservation("r2", "12:00", "13:00"),
            _reservation("r3", "15:00", "16:00"),
        ]

        ranges = generator.free_ranges(DAY, reservations)

        assert [str(r) for r in ranges] == ["08:00 - 09:00", "13:00 - 15:00", "16:00 - 20:00"]

    def test_bookings_outside_window_are_clipped(self):
        """Test bookings that start before or end after the window."""
        generator = _generator()
        reservations = [
            _reservation("early", "06:00", "09:00"),
            _reservation("late", "19:00", "22:00"),
            _reservation("night", "21:00", "23:00"),
        ]

        ranges = generator.free_ranges(DAY, reservations)

        assert [str(r) for r in ranges] == ["09:00 - 19:00"]

    def test_fully_booked(self):
        """Test a day with no free time."""
        generator = _generator()

        assert generator.free_ranges(DAY, [_reservation("r1", "08:00", "20:00")]) == []

    def test_excluded_reservation_counts_as_free(self):
        """Test free ranges while editing."""
        generator = _generator()

        ranges = generator.free_ranges(DAY, [_reservation("r1", "09:00", "12:00")], exclude_id="r1")

        assert [str(r) for r in ranges] == ["08:00 - 20:00"]


class TestEndOptions:
    """Tests for selectable end times."""

    def test_end_options_stop_at_next_booking(self):
        """End times run up to the start of the next reservation."""
        generator = _generator()
        reservations = [_reservation("r1", "12:00", "13:00")]

        options = generator.end_options(DAY, time(9, 0), reservations)

        assert options == [time(10, 0), time(11, 0), time(12, 0)]

    def test_end_options_run_to_day_end(self):
        """Without later bookings every end time up to day end is offered."""
        generator = _generator()

        options = generator.end_options(DAY, time(17, 0), [])

        assert options == [time(18, 0), time(19, 0), time(20, 0)]

    def test_booked_start_has_no_options(self):
        """A start inside a booking offers nothing."""
        generator = _generator()

        assert generator.end_options(DAY, time(10, 0), [_reservation("r1", "09:00", "12:00")]) == []

    def test_editing_offers_own_range(self):
        """While editing, the reservation's own time can be re-selected."""
        generator = _generator()
        reservations = [
            _reservation("r1", "09:00", "12:00"),
            _reservation("r2", "13:00", "14:00"),
        ]

        options = generator.end_options(DAY, time(9, 0), reservations, exclude_id="r1")

        assert options == [time(10, 0), time(11, 0), time(12, 0), time(13, 0)]

    @pytest.mark.parametrize("start", [time(9, 30), time(7, 0), time(20, 0)])
    def test_start_must_be_a_slot_start(self, start):
        """Off-grid starts and the window end are rejected."""
        with pytest.raises(InvalidInterval):
            _generator().end_options(DAY, start, [])
