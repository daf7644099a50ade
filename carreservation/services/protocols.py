"""
Protocols describing the collaborators the reservation service depends on.
"""

from __future__ import annotations

from datetime import date
from typing import List, Optional, Protocol

from ..domain.models import Reservation


class ReservationRepositoryProtocol(Protocol):
    """
    Storage behaviour needed by the service.

    ``persist`` must make read-validate-write atomic for a date: it re-runs
    the reservation validator against the stored state inside its own
    critical section (or relies on an equivalent server-side constraint)
    and raises ``OverlapConflict`` when the write would overlap.
    """

    async def fetch_reservations(self, day: date) -> List[Reservation]:
        """Return all reservations of one date."""

    async def get(self, reservation_id: str) -> Reservation:
        """Return one reservation or raise ``ReservationNotFound``."""

    async def list_all(self) -> List[Reservation]:
        """Return every reservation ordered by date and start time."""

    async def list_by_owner(self, owner_id: str) -> List[Reservation]:
        """Return the reservations of one owner."""

    async def persist(self, reservation: Reservation) -> Reservation:
        """Create (empty id) or replace a reservation and return the stored version."""

    async def delete(self, reservation_id: str) -> Reservation:
        """Remove a reservation and return what was removed."""


class AuthProviderProtocol(Protocol):
    """Identity behaviour needed by the service."""

    def current_owner_id(self) -> Optional[str]:
        """Return the signed-in user's id, or None when nobody is signed in."""
