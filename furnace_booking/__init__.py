from .booking import Booking, TimeRange, check_conflict, find_conflicts, overlaps
from .errors import (
	BookingConflictError,
	BookingError,
	BookingNotFoundError,
	BookingResult,
	BookingTransportError,
	BookingValidationError,
)
from .schedule import DaySchedule, DaySegment, HourSlot, day_window, describe_day, hour_slots, is_hour_covered, project_day
from .schemas import BookingAction, BookingUpdate, NewBooking
from .store import BookingStore
from .yaml_store import YamlBookingStore
from .remote_store import RemoteBookingStore
from .config import Settings, configure_logging, create_store

__all__ = [
	"Booking",
	"TimeRange",
	"overlaps",
	"find_conflicts",
	"check_conflict",
	"BookingError",
	"BookingValidationError",
	"BookingConflictError",
	"BookingNotFoundError",
	"BookingTransportError",
	"BookingResult",
	"DaySchedule",
	"DaySegment",
	"HourSlot",
	"day_window",
	"project_day",
	"is_hour_covered",
	"hour_slots",
	"describe_day",
	"BookingAction",
	"NewBooking",
	"BookingUpdate",
	"BookingStore",
	"YamlBookingStore",
	"RemoteBookingStore",
	"Settings",
	"create_store",
	"configure_logging",
]
