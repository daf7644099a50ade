"""
YAML file repository for reservations.

All reservations live in one ``reservations.yaml`` list under the data
directory. Every write rewrites the file through a temporary file that is
atomically moved into place.
"""

import asyncio
import logging
from datetime import date
from pathlib import Path
from typing import Any, List, Optional, Tuple
from uuid import uuid4

import pendulum
import yaml

from ..domain.exceptions import ReservationNotFound, StorageError
from ..domain.models import Reservation
from ..domain.validation import PENDING_ID, ReservationValidator

logger = logging.getLogger(__name__)

RESERVATIONS_FILE = "reservations.yaml"


class YamlReservationRepository:
    """
    Repository persisting reservations to a YAML file.

    Read-validate-write runs under one lock per repository instance; the
    validator is re-run against the file contents inside that lock.
    """

    def __init__(
        self,
        data_dir: str | Path = "data",
        validator: ReservationValidator | None = None,
    ):
        """
        Initialize the repository.

        Args:
            data_dir: Directory holding ``reservations.yaml``
            validator: Validator used inside the write lock
        """
        self.data_dir = Path(data_dir)
        self.data_file = self.data_dir / RESERVATIONS_FILE
        self._validator = validator or ReservationValidator()
        self._lock = asyncio.Lock()

    def _read_rows(self) -> List[Any]:
        """Return the raw list entries of the file, valid or not."""
        if not self.data_file.exists():
            return []

        try:
            with open(self.data_file, "r", encoding="utf-8") as f:
                payload = yaml.safe_load(f)
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
            raise StorageError(f"Could not read reservations from {self.data_file}: {exc}") from exc

        if payload is None:
            return []
        if not isinstance(payload, list):
            raise StorageError(f"{self.data_file} must contain a list of reservations.")
        return payload

    def _parse(self, rows: List[Any]) -> List[Reservation]:
        reservations: List[Reservation] = []
        for index, row in enumerate(rows):
            if not isinstance(row, dict):
                logger.warning("Skipping entry %d in %s: not a mapping", index, self.data_file)
                continue
            try:
                reservations.append(Reservation.from_dict(row))
            except (KeyError, ValueError) as exc:
                logger.warning("Skipping invalid reservation %r: %s", row.get("id"), exc)
        reservations.sort(key=lambda r: (r.date, r.start_time, r.id))
        return reservations

    def _load(self) -> List[Reservation]:
        return self._parse(self._read_rows())

    def _write(self, rows: List[Any]) -> None:
        """
        Replace the file with ``rows``.

        Entries that could not be parsed are written back unchanged, so an
        unrelated write never drops a hand-edited row.
        """
        rows = sorted(rows, key=_row_sort_key)
        temp_path = self.data_file.with_suffix(self.data_file.suffix + ".tmp")
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            temp_path.write_text(
                yaml.safe_dump(rows, allow_unicode=True, sort_keys=False),
                encoding="utf-8",
            )
            temp_path.replace(self.data_file)
        except OSError as exc:
            raise StorageError(f"Could not write reservations to {self.data_file}: {exc}") from exc
        finally:
            if temp_path.exists():
                temp_path.unlink(missing_ok=True)

    async def fetch_reservations(self, day: date) -> List[Reservation]:
        return [r for r in self._load() if r.date == day]

    async def get(self, reservation_id: str) -> Reservation:
        for reservation in self._load():
            if reservation.id == reservation_id:
                return reservation
        raise ReservationNotFound(reservation_id)

    async def list_all(self) -> List[Reservation]:
        return self._load()

    async def list_by_owner(self, owner_id: str) -> List[Reservation]:
        return [r for r in self._load() if r.owner_id == owner_id]

    async def persist(self, reservation: Reservation) -> Reservation:
        async with self._lock:
            rows = self._read_rows()
            current = self._parse(rows)
            is_new = reservation.id == PENDING_ID
            previous = next((r for r in current if r.id == reservation.id), None)
            if not is_new and previous is None:
                raise ReservationNotFound(reservation.id)

            self._validator.validate(reservation, current).raise_for_error()

            now = pendulum.now().to_iso8601_string()
            stored = Reservation(
                id=uuid4().hex if is_new else reservation.id,
                owner_id=reservation.owner_id,
                date=reservation.date,
                interval=reservation.interval,
                created_at=now if previous is None else previous.created_at,
                updated_at=now,
            )

            remaining = [row for row in rows if _row_id(row) != stored.id]
            self._write(remaining + [stored.to_dict()])
            logger.info("Saved reservation %s to %s", stored.id, self.data_file)
            return stored

    async def delete(self, reservation_id: str) -> Reservation:
        async with self._lock:
            rows = self._read_rows()
            for reservation in self._parse(rows):
                if reservation.id == reservation_id:
                    self._write([row for row in rows if _row_id(row) != reservation_id])
                    logger.info("Removed reservation %s from %s", reservation_id, self.data_file)
                    return reservation
            raise ReservationNotFound(reservation_id)


def _row_id(row: Any) -> Optional[str]:
    if isinstance(row, dict) and row.get("id") is not None:
        return str(row["id"])
    return None


def _row_sort_key(row: Any) -> Tuple[str, str, str]:
    if not isinstance(row, dict):
        return ("", "", "")
    return (str(row.get("date", "")), str(row.get("start_time", "")), str(row.get("id", "")))
