"""
Tests for the ReservationService orchestration layer.
"""

import asyncio
from datetime import date, time
from typing import Optional

import pytest

from carreservation.adapters.memory_store import InMemoryReservationRepository
from carreservation.domain.exceptions import (
    ErrorKind,
    InvalidInterval,
    OverlapConflict,
    ReservationNotFound,
    Unauthorized,
)
from carreservation.domain.models import Reservation, SlotWindow, TimeInterval
from carreservation.domain.slot_generator import SlotGenerator
from carreservation.services.reservation_service import ReservationService

DAY = date(2025, 3, 1)


class StubAuth:
    """Minimal stub matching AuthProviderProtocol."""

    def __init__(self, owner_id: Optional[str]):
        self.owner_id = owner_id

    def current_owner_id(self) -> Optional[str]:
        return self.owner_id


class RacingRepository(InMemoryReservationRepository):
    """Repository whose reads miss a reservation written by someone else."""

    def __init__(self, hidden: Reservation):
        super().__init__([hidden])
        self.hidden = hidden

    async def fetch_reservations(self, day):
        return [r for r in await super().fetch_reservations(day) if r.id != self.hidden.id]


def _build_service(reservations=(), owner_id: Optional[str] = "alice", repository=None):
    generator = SlotGenerator(SlotWindow(day_start=time(8, 0), day_end=time(20, 0), step_minutes=60))
    auth = StubAuth(owner_id)
    repo = repository or InMemoryReservationRepository(reservations)
    return ReservationService(repository=repo, auth=auth, slot_generator=generator), auth, repo


def _reservation(reservation_id: str, start: str, end: str, owner_id: str = "alice") -> Reservation:
    return Reservation(id=reservation_id, owner_id=owner_id, date=DAY, interval=TimeInterval.parse(start, end))


class TestCreateReservation:
    """Tests for booking."""

    def test_create_stamps_owner_and_id(self):
        """A new reservation gets an id and the signed-in owner."""
        service, _, _ = _build_service()

        created = asyncio.run(service.create_reservation("2025-03-01", "09:00", "12:00"))

        assert created.id
        assert created.owner_id == "alice"
        assert created.date == DAY
        assert created.created_at is not None
        assert asyncio.run(service.list_reservations(DAY)) == [created]

    def test_adjacent_booking_is_accepted(self):
        """12:00-13:00 after 09:00-12:00 can be booked."""
        service, _, _ = _build_service([_reservation("r1", "09:00", "12:00", owner_id="bob")])

        created = asyncio.run(service.create_reservation(DAY, "12:00", "13:00"))

        assert created.interval == TimeInterval.parse("12:00", "13:00")

    def test_overlap_is_rejected(self):
        """11:00-13:00 over 09:00-12:00 is rejected naming the reservation."""
        service, _, _ = _build_service([_reservation("r1", "09:00", "12:00", owner_id="bob")])

        with pytest.raises(OverlapConflict) as excinfo:
            asyncio.run(service.create_reservation(DAY, "11:00", "13:00"))

        assert excinfo.value.conflicting_ids == ("r1",)

    def test_empty_interval_is_rejected(self):
        """10:00-10:00 is an invalid interval."""
        service, _, _ = _build_service()

        with pytest.raises(InvalidInterval):
            asyncio.run(service.create_reservation(DAY, "10:00", "10:00"))

    def test_requires_login(self):
        """Booking without a signed-in user is unauthorized."""
        service, _, _ = _build_service(owner_id=None)

        with pytest.raises(Unauthorized):
            asyncio.run(service.create_reservation(DAY, "09:00", "10:00"))

    def test_malformed_date_is_invalid_interval(self):
        """A bad date surfaces as a typed rejection and nothing is stored."""
        service, _, repo = _build_service()

        with pytest.raises(InvalidInterval, match="YYYY-MM-DD"):
            asyncio.run(service.create_reservation("2025-13-45", "09:00", "10:00"))

        assert asyncio.run(repo.list_all()) == []

    def test_repository_rechecks_inside_write(self):
        """A stale read is caught by the repository's own check."""
        hidden = _reservation("r1", "09:00", "12:00", owner_id="bob")
        service, _, _ = _build_service(repository=RacingRepository(hidden))

        with pytest.raises(OverlapConflict) as excinfo:
            asyncio.run(service.create_reservation(DAY, "10:00", "11:00"))

        assert excinfo.value.conflicting_ids == ("r1",)

    def test_concurrent_bookings_store_only_one(self):
        """Two simultaneous requests for the same slot cannot both succeed."""
        service, _, repo = _build_service()

        async def book_twice():
            return await asyncio.gather(
                service.create_reservation(DAY, "09:00", "11:00"),
                service.create_reservation(DAY, "10:00", "12:00"),
                return_exceptions=True,
            )

        results = asyncio.run(book_twice())

        assert sum(isinstance(r, Reservation) for r in results) == 1
        assert sum(isinstance(r, OverlapConflict) for r in results) == 1
        assert len(asyncio.run(repo.list_all())) == 1


class TestUpdateReservation:
    """Tests for editing."""

    def test_update_can_keep_its_own_time(self):
        """Re-saving the same time does not conflict with itself."""
        service, _, _ = _build_service([_reservation("r1", "09:00", "12:00")])

        updated = asyncio.run(service.update_reservation("r1", start_time="09:00", end_time="12:00"))

        assert updated.interval == TimeInterval.parse("09:00", "12:00")
        assert updated.updated_at is not None

    def test_update_partial_fields(self):
        """Omitted fields keep their stored value."""
        service, _, _ = _build_service([_reservation("r1", "09:00", "12:00")])

        updated = asyncio.run(service.update_reservation("r1", end_time="13:00"))

        assert updated.interval == TimeInterval.parse("09:00", "13:00")
        assert updated.date == DAY

    def test_update_into_other_reservation_is_rejected(self):
        """Moving onto another booking fails."""
        service, _, _ = _build_service(
            [_reservation("r1", "09:00", "12:00"), _reservation("r2", "13:00", "14:00", owner_id="bob")]
        )

        with pytest.raises(OverlapConflict) as excinfo:
            asyncio.run(service.update_reservation("r1", end_time="13:30"))

        assert excinfo.value.conflicting_ids == ("r2",)

    def test_update_to_other_date(self):
        """A reservation can move to another day."""
        service, _, _ = _build_service([_reservation("r1", "09:00", "12:00")])

        updated = asyncio.run(service.update_reservation("r1", day="2025-03-02"))

        assert updated.date == date(2025, 3, 2)
        assert asyncio.run(service.list_reservations(DAY)) == []

    def test_update_inverted_times_is_rejected(self):
        """An update that makes start >= end is rejected."""
        service, _, _ = _build_service([_reservation("r1", "09:00", "12:00")])

        with pytest.raises(InvalidInterval):
            asyncio.run(service.update_reservation("r1", start_time="12:00"))

    def test_update_malformed_date_is_invalid_interval(self):
        """Moving to an unparseable date is rejected and the booking is unchanged."""
        original = _reservation("r1", "09:00", "12:00")
        service, _, repo = _build_service([original])

        with pytest.raises(InvalidInterval):
            asyncio.run(service.update_reservation("r1", day="01.03.2025"))

        assert asyncio.run(repo.get("r1")) == original

    def test_only_owner_can_update(self):
        """Someone else's reservation cannot be edited."""
        service, _, _ = _build_service([_reservation("r1", "09:00", "12:00", owner_id="bob")])

        with pytest.raises(Unauthorized):
            asyncio.run(service.update_reservation("r1", end_time="13:00"))

    def test_update_missing_reservation(self):
        """Unknown ids are reported as not found."""
        service, _, _ = _build_service()

        with pytest.raises(ReservationNotFound):
            asyncio.run(service.update_reservation("nope", end_time="13:00"))


class TestCancelReservation:
    """Tests for cancelling."""

    def test_cancel_own_reservation(self):
        """The owner can cancel their reservation."""
        service, _, _ = _build_service([_reservation("r1", "09:00", "12:00")])

        removed = asyncio.run(service.cancel_reservation("r1"))

        assert removed.id == "r1"
        assert asyncio.run(service.list_reservations()) == []

    def test_cancel_other_owner_is_unauthorized(self):
        """Other users' reservations cannot be cancelled."""
        service, _, _ = _build_service([_reservation("r1", "09:00", "12:00", owner_id="bob")])

        with pytest.raises(Unauthorized):
            asyncio.run(service.cancel_reservation("r1"))


class TestAvailability:
    """Tests for slot queries."""

    def test_available_slots(self):
        """Slots booked by 09:00-12:00 are marked unavailable."""
        service, _, _ = _build_service([_reservation("r1", "09:00", "12:00")])

        slots = asyncio.run(service.available_slots("2025-03-01"))

        assert [s.start.hour for s in slots if not s.available] == [9, 10, 11]

    def test_available_slots_while_editing(self):
        """Excluding the edited reservation frees its slots."""
        service, _, _ = _build_service([_reservation("r1", "09:00", "12:00")])

        slots = asyncio.run(service.available_slots(DAY, exclude_id="r1"))

        assert all(s.available for s in slots)

    def test_check_availability(self):
        """Preview accepts free ranges and rejects booked ones."""
        service, _, repo = _build_service([_reservation("r1", "09:00", "12:00")])

        assert asyncio.run(service.check_availability(DAY, "12:00", "13:00")).accepted
        rejected = asyncio.run(service.check_availability(DAY, "11:00", "13:00"))
        assert rejected.kind is ErrorKind.OVERLAP_CONFLICT
        assert len(asyncio.run(repo.list_all())) == 1

    def test_check_availability_bad_date(self):
        """A malformed date is reported as a rejection."""
        service, _, _ = _build_service()

        result = asyncio.run(service.check_availability("tomorrow", "09:00", "10:00"))

        assert not result.accepted
        assert result.kind is ErrorKind.INVALID_INTERVAL

    @pytest.mark.parametrize("query", ["available_slots", "free_ranges"])
    def test_queries_reject_malformed_date(self, query):
        service, _, _ = _build_service()

        with pytest.raises(InvalidInterval):
            asyncio.run(getattr(service, query)("2025-02-30"))

    def test_free_ranges_and_end_options(self):
        """Free stretches and end times follow the stored bookings."""
        service, _, _ = _build_service([_reservation("r1", "12:00", "13:00")])

        ranges = asyncio.run(service.free_ranges(DAY))
        options = asyncio.run(service.end_options(DAY, "10:00"))

        assert [str(r) for r in ranges] == ["08:00 - 12:00", "13:00 - 20:00"]
        assert options == [time(11, 0), time(12, 0)]

    def test_my_reservations(self):
        """Only the signed-in owner's reservations are listed."""
        service, _, _ = _build_service(
            [_reservation("r1", "09:00", "10:00"), _reservation("r2", "10:00", "11:00", owner_id="bob")]
        )

        mine = asyncio.run(service.my_reservations())

        assert [r.id for r in mine] == ["r1"]
