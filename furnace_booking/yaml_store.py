from __future__ import annotations

import logging
import shutil
import tempfile
import threading
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable
from uuid import uuid4

import yaml

from .booking import Booking, find_conflicts, format_timestamp, overlaps
from .errors import (
    CREATE_CONFLICT_MESSAGE,
    UPDATE_CONFLICT_MESSAGE,
    BookingConflictError,
    BookingNotFoundError,
    BookingResult,
    BookingTransportError,
)
from .schedule import day_window
from .schemas import BookingUpdate, NewBooking
from .store import DELETED_MESSAGE, BookingStore

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "tube_furnace_bookings_v2"


class YamlBookingStore(BookingStore):
    """Booking store that keeps the whole collection in one YAML list.

    Writes go through a per-store lock so that the conflict check and the
    commit that follows it see the same snapshot.
    """

    def __init__(
        self,
        base_dir: str | Path = "data",
        storage_key: str = DEFAULT_STORAGE_KEY,
        now_provider: Callable[[], datetime] | None = None,
    ) -> None:
        super().__init__()
        self.base_dir = Path(base_dir)
        self.bookings_file = self.base_dir / f"{storage_key}.yaml"
        self.log_file = self.base_dir / "booking_events.yaml"
        self._clock: Callable[[], datetime] = now_provider or datetime.now
        self._lock = threading.RLock()
        self._ensure_files()

    def _ensure_files(self) -> None:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        for path in (self.bookings_file, self.log_file):
            if not path.exists():
                path.write_text("[]\n", encoding="utf-8")

    def _read_yaml_list(self, path: Path) -> list[dict[str, Any]]:
        try:
            payload = yaml.safe_load(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            self._reset_yaml_list(path)
            return []
        except OSError as error:
            raise BookingTransportError(f"Failed to read YAML file: {path}") from error
        except (UnicodeDecodeError, yaml.YAMLError) as error:
            self._recover_corrupted_yaml(path, error)
            return []

        if payload is None:
            return []
        if not isinstance(payload, list):
            self._recover_corrupted_yaml(path, ValueError("top-level YAML is not a list"))
            return []

        sanitized: list[dict[str, Any]] = []
        for index, row in enumerate(payload):
            if isinstance(row, dict):
                sanitized.append(row)
            else:
                self._log_event(
                    "YAML_ROW_SKIPPED",
                    {
                        "file": str(path.name),
                        "index": index,
                        "reason": "row is not a mapping",
                    },
                )
        return sanitized

    def _write_yaml_list(self, path: Path, rows: list[dict[str, Any]]) -> None:
        temp_path: Path | None = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=path.parent,
                prefix=f"{path.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                temp_path = Path(handle.name)
                handle.write(yaml.safe_dump(rows, allow_unicode=True, sort_keys=False))
            temp_path.replace(path)
        except OSError as error:
            raise BookingTransportError(f"Failed to write YAML file: {path}") from error
        finally:
            if temp_path is not None and temp_path.exists():
                temp_path.unlink(missing_ok=True)

    def _reset_yaml_list(self, path: Path) -> None:
        try:
            path.write_text("[]\n", encoding="utf-8")
        except OSError as error:
            raise BookingTransportError(f"Failed to reset YAML file: {path}") from error

    def _recover_corrupted_yaml(self, path: Path, error: Exception) -> None:
        with self._lock:
            timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
            backup_path = path.with_name(f"{path.stem}.corrupt.{timestamp}{path.suffix}")
            try:
                if path.exists():
                    shutil.copy2(path, backup_path)
            except OSError:
                logger.exception("Could not back up corrupted file %s", path)

            self._reset_yaml_list(path)
            logger.error("Recovered corrupted YAML file %s: %s", path, error)
            if path != self.log_file:
                self._log_event(
                    "YAML_RECOVERED",
                    {
                        "file": str(path.name),
                        "backup": str(backup_path.name),
                        "reason": str(error),
                    },
                )

    def _log_event(self, event_type: str, payload: dict[str, Any], event_time: datetime | None = None) -> None:
        timestamp = format_timestamp(event_time or self._clock())
        with self._lock:
            try:
                events = self._read_yaml_list(self.log_file)
                events.append({"event_time": timestamp, "event_type": event_type, "payload": payload})
                self._write_yaml_list(self.log_file, events)
            except BookingTransportError as error:
                # The audit trail must not undo a write that already committed.
                logger.error("Could not record %s event: %s", event_type, error.message)

    def _decode_rows(self, rows: list[dict[str, Any]]) -> list[Booking]:
        bookings: list[Booking] = []
        for index, row in enumerate(rows):
            try:
                bookings.append(Booking.from_dict(row))
            except (KeyError, TypeError, ValueError) as error:
                self._log_event(
                    "YAML_ROW_SKIPPED",
                    {
                        "file": str(self.bookings_file.name),
                        "index": index,
                        "reason": f"row is not a booking: {error}",
                    },
                )
        return bookings

    def get_all_bookings(self) -> list[Booking]:
        return self._decode_rows(self._read_yaml_list(self.bookings_file))

    def get_booking(self, booking_id: str) -> Booking | None:
        for booking in self.get_all_bookings():
            if booking.id == booking_id:
                return booking
        return None

    def _list_bookings(self, day: date) -> list[Booking]:
        window = day_window(day)
        return [booking for booking in self.get_all_bookings() if overlaps(booking, window)]

    def _create_booking(self, request: NewBooking) -> BookingResult:
        with self._lock:
            existing = self.get_all_bookings()
            conflicts = find_conflicts(request, existing)
            if conflicts:
                self._log_rejection("create", request, conflicts)
                raise BookingConflictError(CREATE_CONFLICT_MESSAGE, [booking.id for booking in conflicts])

            created = Booking(
                id=str(uuid4()),
                start=request.start,
                end=request.end,
                name=request.name,
                sample=request.sample,
                gas=request.gas,
                notes=request.notes,
                created_at=self._clock().replace(microsecond=0),
            )
            self._write_yaml_list(self.bookings_file, [booking.to_dict() for booking in [*existing, created]])
            self._log_event("BOOKING_CREATED", self._event_payload(created), created.created_at)

        logger.info("Booking %s created for %s", created.id, created.name)
        return BookingResult.ok("Booking created", created)

    def _update_booking(self, request: BookingUpdate) -> BookingResult:
        with self._lock:
            existing = self.get_all_bookings()
            found_index = -1
            for index, booking in enumerate(existing):
                if booking.id == request.id:
                    found_index = index
                    break

            if found_index < 0:
                raise BookingNotFoundError()

            conflicts = find_conflicts(request, existing, exclude_id=request.id)
            if conflicts:
                self._log_rejection("update", request, conflicts)
                raise BookingConflictError(UPDATE_CONFLICT_MESSAGE, [booking.id for booking in conflicts])

            current = existing[found_index]
            updated = Booking(
                id=current.id,
                start=request.start,
                end=request.end,
                name=request.name,
                sample=request.sample,
                gas=request.gas,
                notes=request.notes,
                created_at=current.created_at,
            )
            existing[found_index] = updated
            self._write_yaml_list(self.bookings_file, [booking.to_dict() for booking in existing])
            self._log_event("BOOKING_UPDATED", self._event_payload(updated))

        logger.info("Booking %s updated", updated.id)
        return BookingResult.ok("Booking updated", updated)

    def _delete_booking(self, booking_id: str) -> BookingResult:
        with self._lock:
            existing = self.get_all_bookings()
            remaining = [booking for booking in existing if booking.id != booking_id]
            removed = len(remaining) != len(existing)
            if removed:
                self._write_yaml_list(self.bookings_file, [booking.to_dict() for booking in remaining])
                self._log_event("BOOKING_DELETED", {"id": booking_id})

        if removed:
            logger.info("Booking %s deleted", booking_id)
        return BookingResult.ok(DELETED_MESSAGE)

    def _log_rejection(self, operation: str, request: NewBooking, conflicts: list[Booking]) -> None:
        self._log_event(
            "BOOKING_REJECTED",
            {
                "operation": operation,
                "start": format_timestamp(request.start),
                "end": format_timestamp(request.end),
                "conflicts_with": [booking.id for booking in conflicts],
            },
        )

    @staticmethod
    def _event_payload(booking: Booking) -> dict[str, Any]:
        return {
            "id": booking.id,
            "name": booking.name,
            "start": format_timestamp(booking.start),
            "end": format_timestamp(booking.end),
        }
