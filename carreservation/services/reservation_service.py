"""
Application service for booking the car.

The service coordinates the storage repository and the identity provider and
delegates every availability decision to the domain-level ``SlotGenerator``
and ``ReservationValidator``. Keeping the CLI thin and the collaborators
behind protocols makes it easy to run against the YAML file store, the REST
backend or an in-memory store in tests.
"""

from __future__ import annotations

import logging
from datetime import date, time
from typing import List, Optional

from ..domain.exceptions import InvalidInterval, Unauthorized
from ..domain.models import Reservation, Slot, TimeInterval, parse_date, parse_time
from ..domain.slot_generator import SlotGenerator
from ..domain.validation import ReservationValidator, ValidationResult, build_candidate
from .protocols import AuthProviderProtocol, ReservationRepositoryProtocol

logger = logging.getLogger(__name__)


def _as_date(value: str | date) -> date:
    return parse_date(value) if isinstance(value, str) else value


def _as_time(value: str | time) -> time:
    return parse_time(value) if isinstance(value, str) else value


class ReservationService:
    """
    Orchestrates reservation queries and changes for the signed-in owner.
    """

    def __init__(
        self,
        repository: ReservationRepositoryProtocol,
        auth: AuthProviderProtocol,
        slot_generator: SlotGenerator,
        validator: ReservationValidator | None = None,
    ) -> None:
        self._repository = repository
        self._auth = auth
        self._slot_generator = slot_generator
        self._validator = validator or ReservationValidator(checker=slot_generator.checker)

    async def list_reservations(self, day: str | date | None = None) -> List[Reservation]:
        """All reservations, or those of one date."""
        if day is None:
            return await self._repository.list_all()
        return await self._repository.fetch_reservations(_as_date(day))

    async def my_reservations(self) -> List[Reservation]:
        owner_id = self._require_owner()
        return await self._repository.list_by_owner(owner_id)

    async def get_reservation(self, reservation_id: str) -> Reservation:
        """Return one of the signed-in owner's reservations."""
        owner_id = self._require_owner()
        return await self._get_owned(reservation_id, owner_id)

    async def available_slots(
        self,
        day: str | date,
        exclude_id: Optional[str] = None,
    ) -> List[Slot]:
        """Slots of a date with their availability."""
        target = _as_date(day)
        reservations = await self._repository.fetch_reservations(target)
        return self._slot_generator.generate(target, reservations, exclude_id)

    async def free_ranges(
        self,
        day: str | date,
        exclude_id: Optional[str] = None,
    ) -> List[TimeInterval]:
        target = _as_date(day)
        reservations = await self._repository.fetch_reservations(target)
        return self._slot_generator.free_ranges(target, reservations, exclude_id)

    async def end_options(
        self,
        day: str | date,
        start: str | time,
        exclude_id: Optional[str] = None,
    ) -> List[time]:
        """End times selectable for a booking starting at ``start``."""
        target = _as_date(day)
        reservations = await self._repository.fetch_reservations(target)
        return self._slot_generator.end_options(target, _as_time(start), reservations, exclude_id)

    async def check_availability(
        self,
        day: str | date,
        start_time: str,
        end_time: str,
        exclude_id: Optional[str] = None,
    ) -> ValidationResult:
        """
        Preview whether a booking would be accepted, without storing it.
        """
        try:
            target = _as_date(day)
        except InvalidInterval as exc:
            return ValidationResult.reject(exc)

        reservations = await self._repository.fetch_reservations(target)
        return self._validator.validate_request(
            target,
            start_time,
            end_time,
            owner_id=self._auth.current_owner_id() or "",
            existing=reservations,
            reservation_id=exclude_id,
        )

    async def create_reservation(
        self,
        day: str | date,
        start_time: str,
        end_time: str,
    ) -> Reservation:
        """
        Book the car for the signed-in owner.

        Raises:
            Unauthorized: If nobody is signed in
            InvalidInterval: If the times are malformed or not increasing
            OverlapConflict: If the interval overlaps another reservation
        """
        owner_id = self._require_owner()
        candidate = build_candidate(_as_date(day), start_time, end_time, owner_id)

        existing = await self._repository.fetch_reservations(candidate.date)
        self._validator.validate(candidate, existing).raise_for_error()

        stored = await self._repository.persist(candidate)
        logger.info("Created reservation %s on %s (%s)", stored.id, stored.date, stored.interval)
        return stored

    async def update_reservation(
        self,
        reservation_id: str,
        day: str | date | None = None,
        start_time: str | None = None,
        end_time: str | None = None,
    ) -> Reservation:
        """
        Change the date and/or times of one of the owner's reservations.

        Omitted fields keep their stored value. The result is validated
        again even when nothing changed.
        """
        owner_id = self._require_owner()
        current = await self._get_owned(reservation_id, owner_id)

        candidate = Reservation(
            id=current.id,
            owner_id=current.owner_id,
            date=_as_date(day) if day is not None else current.date,
            interval=TimeInterval(
                start=parse_time(start_time) if start_time is not None else current.start_time,
                end=parse_time(end_time) if end_time is not None else current.end_time,
            ),
            created_at=current.created_at,
        )

        existing = await self._repository.fetch_reservations(candidate.date)
        self._validator.validate(candidate, existing, exclude_id=current.id).raise_for_error()

        stored = await self._repository.persist(candidate)
        logger.info("Updated reservation %s to %s (%s)", stored.id, stored.date, stored.interval)
        return stored

    async def cancel_reservation(self, reservation_id: str) -> Reservation:
        """Cancel one of the owner's reservations."""
        owner_id = self._require_owner()
        await self._get_owned(reservation_id, owner_id)
        removed = await self._repository.delete(reservation_id)
        logger.info("Cancelled reservation %s", reservation_id)
        return removed

    def _require_owner(self) -> str:
        owner_id = self._auth.current_owner_id()
        if not owner_id:
            raise Unauthorized()
        return owner_id

    async def _get_owned(self, reservation_id: str, owner_id: str) -> Reservation:
        reservation = await self._repository.get(reservation_id)
        if reservation.owner_id != owner_id:
            raise Unauthorized("You can only manage your own reservations.")
        return reservation

