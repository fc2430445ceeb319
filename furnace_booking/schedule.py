from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import TYPE_CHECKING, Any, Callable, Iterable, Mapping

from .booking import Booking, TimeRange, overlaps
from .errors import BookingError, BookingResult

if TYPE_CHECKING:
    from .schemas import BookingUpdate, NewBooking
    from .store import BookingStore

HOURS_PER_DAY = 24
_ONE_HOUR = timedelta(hours=1)


@dataclass(frozen=True)
class DaySegment:
    """The part of one booking that falls inside a single calendar day."""

    booking: Booking
    start: datetime
    end: datetime
    continues_from_prior_day: bool
    continues_into_next_day: bool

    @property
    def start_hour(self) -> int:
        return self.start.hour

    @property
    def duration_hours(self) -> float:
        return (self.end - self.start) / _ONE_HOUR

    @property
    def spans_multiple_days(self) -> bool:
        return self.booking.start.date() != self.booking.end.date()

    def covers_hour(self, hour: int) -> bool:
        """True when the segment began in an earlier hour and still runs during ``hour``."""
        return self.start_hour < hour < self.start_hour + self.duration_hours

    def to_dict(self) -> dict[str, Any]:
        return {
            "booking": self.booking.to_dict(),
            "startHour": self.start_hour,
            "durationHours": self.duration_hours,
            "continuesFromPriorDay": self.continues_from_prior_day,
            "continuesIntoNextDay": self.continues_into_next_day,
            "spansMultipleDays": self.spans_multiple_days,
        }


@dataclass(frozen=True)
class HourSlot:
    hour: int
    segments: tuple[DaySegment, ...] = ()
    covered: bool = False

    @property
    def bookable(self) -> bool:
        return not self.segments and not self.covered

    def to_dict(self) -> dict[str, Any]:
        return {
            "hour": self.hour,
            "label": f"{self.hour:02d}:00",
            "bookable": self.bookable,
            "bookingIds": [segment.booking.id for segment in self.segments],
        }


def day_window(day: date) -> TimeRange:
    day_start = datetime.combine(day, time.min)
    return TimeRange(day_start, day_start + timedelta(days=1))


def project_day(day: date, bookings: Iterable[Booking]) -> list[DaySegment]:
    window = day_window(day)
    segments = [
        DaySegment(
            booking=booking,
            start=max(booking.start, window.start),
            end=min(booking.end, window.end),
            continues_from_prior_day=booking.start < window.start,
            continues_into_next_day=booking.end > window.end,
        )
        for booking in bookings
        if overlaps(booking, window)
    ]
    return sorted(segments, key=lambda segment: (segment.start, segment.booking.id))


def is_hour_covered(hour: int, segments: Iterable[DaySegment]) -> bool:
    return any(segment.covers_hour(hour) for segment in segments)


def hour_slots(segments: Iterable[DaySegment]) -> list[HourSlot]:
    segments = list(segments)
    slots: list[HourSlot] = []
    for hour in range(HOURS_PER_DAY):
        starting = tuple(segment for segment in segments if segment.start_hour == hour)
        slots.append(HourSlot(hour=hour, segments=starting, covered=is_hour_covered(hour, segments)))
    return slots


def describe_day(store: "BookingStore", day: date) -> dict[str, Any]:
    """Build the wire view of one day, reporting a failed fetch instead of an empty day."""
    bookings, error = store.read_bookings(day)
    if error is not None:
        return {
            "success": False,
            "date": day.isoformat(),
            "message": error.message,
            "error": error.code,
            "segments": [],
            "slots": [],
        }

    segments = project_day(day, bookings)
    return {
        "success": True,
        "date": day.isoformat(),
        "segments": [segment.to_dict() for segment in segments],
        "slots": [slot.to_dict() for slot in hour_slots(segments)],
    }


@dataclass
class DaySchedule:
    """Single-day view over a booking store.

    Holds nothing but the selected day and the bookings last fetched for it;
    every successful write is followed by a fresh fetch of that day.
    """

    store: "BookingStore"
    day: date | None = None
    today_provider: Callable[[], date] = date.today
    bookings: list[Booking] = field(default_factory=list)
    segments: list[DaySegment] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.day is None:
            self.day = self.today_provider()

    @property
    def last_error(self) -> BookingError | None:
        return self.store.last_error

    def select_day(self, day: date) -> list[DaySegment]:
        self.day = day
        return self.refresh()

    def refresh(self) -> list[DaySegment]:
        self.bookings = self.store.list_bookings(self.day)
        self.segments = project_day(self.day, self.bookings)
        return self.segments

    def hour_slots(self) -> list[HourSlot]:
        return hour_slots(self.segments)

    def slot_range(self, hour: int) -> TimeRange:
        if not 0 <= hour < HOURS_PER_DAY:
            raise ValueError("hour must be between 0 and 23")
        start = datetime.combine(self.day, time(hour=hour))
        return TimeRange(start, start + _ONE_HOUR)

    def submit(self, new_booking: "NewBooking | Mapping[str, Any]") -> BookingResult:
        return self._after_write(self.store.create_booking(new_booking))

    def edit(self, update: "BookingUpdate | Mapping[str, Any]") -> BookingResult:
        return self._after_write(self.store.update_booking(update))

    def remove(self, booking_id: str) -> BookingResult:
        return self._after_write(self.store.delete_booking(booking_id))

    def _after_write(self, result: BookingResult) -> BookingResult:
        if result.success:
            self.refresh()
        return result
