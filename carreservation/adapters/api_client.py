"""
REST client for the reservation backend (``/api/v1/reservations``).
"""

import asyncio
import logging
from datetime import date
from typing import Any, Dict, List, Optional

import requests

from ..domain.exceptions import (
    InvalidInterval,
    OverlapConflict,
    ReservationError,
    ReservationNotFound,
    StorageError,
    Unauthorized,
)
from ..domain.models import Reservation, TimeInterval, parse_date
from ..domain.validation import PENDING_ID

logger = logging.getLogger(__name__)


class ApiReservationRepository:
    """
    Repository backed by the reservation REST API.

    The backend enforces the no-overlap rule inside its own transaction, so
    ``persist`` simply submits the write and maps a rejection back onto the
    domain errors.

    Response format (JSON:API):
    {
        "data": {
            "id": "42",
            "type": "reservation",
            "attributes": {"date": "2025-03-01", "start_time": "09:00", "end_time": "12:00"},
            "relationships": {"user": {"data": {"id": "7", "type": "user"}}}
        }
    }
    """

    RESERVATIONS_PATH = "/api/v1/reservations"

    def __init__(
        self,
        base_url: str,
        access_token: Optional[str] = None,
        timeout: float = 30,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the API client.

        Args:
            base_url: Backend root URL, e.g. ``http://localhost:3000``
            access_token: Bearer token of the signed-in user
            timeout: Request timeout in seconds
            session: Optional pre-configured requests session
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if access_token:
            self.headers["Authorization"] = f"Bearer {access_token}"

    async def fetch_reservations(self, day: date) -> List[Reservation]:
        data = await self._call("GET", self.RESERVATIONS_PATH, params={"date": day.isoformat()})
        return [r for r in self._parse_collection(data) if r.date == day]

    async def get(self, reservation_id: str) -> Reservation:
        data = await self._call("GET", f"{self.RESERVATIONS_PATH}/{reservation_id}", reservation_id=reservation_id)
        return self._parse_resource(data.get("data") or {})

    async def list_all(self) -> List[Reservation]:
        data = await self._call("GET", self.RESERVATIONS_PATH)
        return self._parse_collection(data)

    async def list_by_owner(self, owner_id: str) -> List[Reservation]:
        return [r for r in await self.list_all() if r.owner_id == owner_id]

    async def persist(self, reservation: Reservation) -> Reservation:
        body = {
            "reservation": {
                "date": reservation.date.isoformat(),
                **reservation.interval.to_wire(),
            }
        }
        if reservation.id == PENDING_ID:
            data = await self._call("POST", self.RESERVATIONS_PATH, json=body)
        else:
            data = await self._call(
                "PATCH",
                f"{self.RESERVATIONS_PATH}/{reservation.id}",
                json=body,
                reservation_id=reservation.id,
            )
        return self._parse_resource(data.get("data") or {})

    async def delete(self, reservation_id: str) -> Reservation:
        reservation = await self.get(reservation_id)
        await self._call("DELETE", f"{self.RESERVATIONS_PATH}/{reservation_id}", reservation_id=reservation_id)
        return reservation

    async def _call(
        self,
        method: str,
        path: str,
        *,
        reservation_id: Optional[str] = None,
        **kwargs: Any,
    ) -> Dict[str, Any]:
        return await asyncio.to_thread(self._request, method, path, reservation_id, **kwargs)

    def _request(
        self,
        method: str,
        path: str,
        reservation_id: Optional[str],
        **kwargs: Any,
    ) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"

        try:
            response = self.session.request(
                method,
                url,
                headers=self.headers,
                timeout=self.timeout,
                **kwargs,
            )
        except requests.exceptions.RequestException as e:
            raise StorageError(f"Reservation backend unreachable: {e}") from e

        if response.status_code >= 400:
            raise self._error_for(response, reservation_id)

        if response.status_code == 204 or not response.content:
            return {}

        try:
            payload = response.json()
        except ValueError as e:
            raise StorageError(f"Invalid JSON from reservation backend: {e}") from e

        if not isinstance(payload, dict):
            raise StorageError("Unexpected response from reservation backend.")
        return payload

    @staticmethod
    def _error_for(response: requests.Response, reservation_id: Optional[str]) -> ReservationError:
        """Map an HTTP error response onto the domain error taxonomy."""
        status = response.status_code
        messages = _error_messages(response)
        summary = "; ".join(messages) if messages else None

        if status == 404:
            return ReservationNotFound(reservation_id or "", summary)
        if status in (401, 403):
            return Unauthorized(summary)
        if status == 422:
            if any("overlap" in message.lower() for message in messages):
                return OverlapConflict(message=summary)
            return InvalidInterval(summary)

        logger.warning("Reservation backend returned HTTP %s: %s", status, summary)
        return StorageError(f"Reservation backend error (HTTP {status}).")

    def _parse_collection(self, payload: Dict[str, Any]) -> List[Reservation]:
        reservations: List[Reservation] = []
        for item in payload.get("data", []):
            try:
                reservations.append(self._parse_resource(item))
            except StorageError as e:
                logger.warning("Skipping reservation from backend: %s", e)
        reservations.sort(key=lambda r: (r.date, r.start_time, r.id))
        return reservations

    @staticmethod
    def _parse_resource(item: Dict[str, Any]) -> Reservation:
        try:
            attributes = item["attributes"]
            owner = item.get("relationships", {}).get("user", {}).get("data") or {}
            return Reservation(
                id=str(item["id"]),
                owner_id=str(owner.get("id", "")),
                date=parse_date(str(attributes["date"])),
                interval=TimeInterval.parse(str(attributes["start_time"]), str(attributes["end_time"])),
                created_at=attributes.get("created_at"),
                updated_at=attributes.get("updated_at"),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise StorageError(f"Could not parse reservation: {e}") from e


def _error_messages(response: requests.Response) -> List[str]:
    try:
        payload = response.json()
    except ValueError:
        return []

    if not isinstance(payload, dict):
        return []
    if isinstance(payload.get("errors"), list):
        return [str(message) for message in payload["errors"]]
    if payload.get("error"):
        return [str(payload["error"])]
    return []
