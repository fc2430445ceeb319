from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Protocol


class _HasRange(Protocol):
    start: datetime
    end: datetime


@dataclass(frozen=True)
class TimeRange:
    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise ValueError("Range start time must be earlier than end time.")


@dataclass(frozen=True)
class Booking:
    id: str
    start: datetime
    end: datetime
    name: str
    sample: str
    gas: str
    created_at: datetime
    notes: str | None = None

    def to_dict(self) -> dict[str, str]:
        payload = {
            "id": self.id,
            "startDateTime": format_timestamp(self.start),
            "endDateTime": format_timestamp(self.end),
            "name": self.name,
            "sample": self.sample,
            "gas": self.gas,
            "createdAt": format_timestamp(self.created_at),
        }
        if self.notes is not None:
            payload["notes"] = self.notes
        return payload

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Booking":
        return Booking(
            id=str(data["id"]),
            start=parse_timestamp(data["startDateTime"]),
            end=parse_timestamp(data["endDateTime"]),
            name=str(data["name"]),
            sample=str(data["sample"]),
            gas=str(data["gas"]),
            created_at=parse_timestamp(data["createdAt"]),
            notes=(str(data.get("notes")) if data.get("notes") is not None else None),
        )


def format_timestamp(value: datetime) -> str:
    return value.isoformat(timespec="seconds")


def parse_timestamp(value: Any) -> datetime:
    """Parse a wire timestamp into a naive local datetime.

    Values qualified with an offset (including a trailing ``Z``) are moved to
    the local clock and stripped of their tzinfo.
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).strip())
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def overlaps(first: _HasRange, second: _HasRange) -> bool:
    """Return True when two ranges share at least one instant.

    Ranges are half-open, [start, end), so touching boundaries
    (e.g. 09:00-10:00 and 10:00-11:00) do not overlap.
    """
    return first.start < second.end and first.end > second.start


def find_conflicts(
    candidate: _HasRange,
    existing_bookings: Iterable[Booking],
    exclude_id: str | None = None,
) -> list[Booking]:
    """Return the existing bookings that overlap ``candidate``.

    The booking whose id equals ``exclude_id`` is ignored, so an update can be
    checked without colliding with its own prior version.
    """
    return [
        booking
        for booking in existing_bookings
        if booking.id != exclude_id and overlaps(candidate, booking)
    ]


def check_conflict(
    candidate: _HasRange,
    existing_bookings: Iterable[Booking],
    exclude_id: str | None = None,
) -> bool:
    return bool(find_conflicts(candidate, existing_bookings, exclude_id))
