"""
In-memory reservation repository for tests and mock mode.
"""

import asyncio
import logging
from datetime import date
from typing import Dict, Iterable, List
from uuid import uuid4

import pendulum

from ..domain.exceptions import ReservationNotFound
from ..domain.models import Reservation
from ..domain.validation import PENDING_ID, ReservationValidator

logger = logging.getLogger(__name__)


def _sort_key(reservation: Reservation):
    return (reservation.date, reservation.start_time, reservation.id)


class InMemoryReservationRepository:
    """
    Dict-backed repository.

    Writes are serialized by one lock and re-validated inside it, so two
    concurrent bookings for the same time can never both be stored.
    """

    def __init__(
        self,
        reservations: Iterable[Reservation] = (),
        validator: ReservationValidator | None = None,
    ):
        """
        Initialize the repository.

        Args:
            reservations: Optional seed data
            validator: Validator used inside the write lock
        """
        self._reservations: Dict[str, Reservation] = {r.id: r for r in reservations}
        self._validator = validator or ReservationValidator()
        self._lock = asyncio.Lock()

    async def fetch_reservations(self, day: date) -> List[Reservation]:
        return sorted(
            (r for r in self._reservations.values() if r.date == day),
            key=_sort_key,
        )

    async def get(self, reservation_id: str) -> Reservation:
        try:
            return self._reservations[reservation_id]
        except KeyError:
            raise ReservationNotFound(reservation_id) from None

    async def list_all(self) -> List[Reservation]:
        return sorted(self._reservations.values(), key=_sort_key)

    async def list_by_owner(self, owner_id: str) -> List[Reservation]:
        return [r for r in await self.list_all() if r.owner_id == owner_id]

    async def persist(self, reservation: Reservation) -> Reservation:
        async with self._lock:
            is_new = reservation.id == PENDING_ID
            if not is_new and reservation.id not in self._reservations:
                raise ReservationNotFound(reservation.id)
            previous = None if is_new else self._reservations[reservation.id]

            self._validator.validate(
                reservation,
                self._reservations.values(),
            ).raise_for_error()

            now = pendulum.now().to_iso8601_string()
            stored = Reservation(
                id=uuid4().hex if is_new else reservation.id,
                owner_id=reservation.owner_id,
                date=reservation.date,
                interval=reservation.interval,
                created_at=now if previous is None else previous.created_at,
                updated_at=now,
            )
            self._reservations[stored.id] = stored
            logger.debug("Stored reservation %s in memory", stored.id)
            return stored

    async def delete(self, reservation_id: str) -> Reservation:
        async with self._lock:
            try:
                return self._reservations.pop(reservation_id)
            except KeyError:
                raise ReservationNotFound(reservation_id) from None
