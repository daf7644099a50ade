"""
Read-through cache in front of a reservation repository.
"""

import logging
import time
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, List

from ..domain.models import Reservation
from ..domain.validation import PENDING_ID
from ..services.protocols import ReservationRepositoryProtocol

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 60.0


@dataclass
class _CacheEntry:
    reservations: List[Reservation]
    stored_at: float


class CachedReservationRepository:
    """
    Caches per-date reservation lists for ``ttl_seconds``.

    Every write that goes through this wrapper drops the entries of the
    dates it touched. Writes themselves, and their overlap re-check, are
    always delegated to the wrapped repository.
    """

    def __init__(
        self,
        inner: ReservationRepositoryProtocol,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._inner = inner
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[date, _CacheEntry] = {}

    def invalidate(self, day: date | None = None) -> None:
        """Drop one date's entry, or the whole cache."""
        if day is None:
            self._entries.clear()
        else:
            self._entries.pop(day, None)

    async def fetch_reservations(self, day: date) -> List[Reservation]:
        entry = self._entries.get(day)
        now = self._clock()

        if entry is not None and now - entry.stored_at < self._ttl_seconds:
            logger.debug("Using cached reservations for %s", day)
            return list(entry.reservations)

        reservations = await self._inner.fetch_reservations(day)
        self._entries[day] = _CacheEntry(reservations=list(reservations), stored_at=now)
        return list(reservations)

    async def get(self, reservation_id: str) -> Reservation:
        return await self._inner.get(reservation_id)

    async def list_all(self) -> List[Reservation]:
        return await self._inner.list_all()

    async def list_by_owner(self, owner_id: str) -> List[Reservation]:
        return await self._inner.list_by_owner(owner_id)

    async def persist(self, reservation: Reservation) -> Reservation:
        if reservation.id != PENDING_ID:
            previous = await self._inner.get(reservation.id)
            self.invalidate(previous.date)
        self.invalidate(reservation.date)

        stored = await self._inner.persist(reservation)
        self.invalidate(stored.date)
        return stored

    async def delete(self, reservation_id: str) -> Reservation:
        removed = await self._inner.delete(reservation_id)
        self.invalidate(removed.date)
        return removed
