from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .booking import Booking

REQUIRED_FIELDS_MESSAGE = "Please fill in all required fields."
INVALID_RANGE_MESSAGE = "End time must be strictly after start time."
CREATE_CONFLICT_MESSAGE = "Time slot conflict detected across dates."
UPDATE_CONFLICT_MESSAGE = "Update failed: New range overlaps with another booking."
NOT_FOUND_MESSAGE = "Booking not found"


class BookingError(Exception):
    code = "ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class BookingValidationError(BookingError, ValueError):
    code = "VALIDATION"


class BookingConflictError(BookingError, ValueError):
    code = "CONFLICT"

    def __init__(self, message: str, conflicting_ids: list[str] | None = None) -> None:
        super().__init__(message)
        self.conflicting_ids = list(conflicting_ids or [])


class BookingNotFoundError(BookingError, LookupError):
    code = "NOT_FOUND"

    def __init__(self, message: str = NOT_FOUND_MESSAGE) -> None:
        super().__init__(message)


class BookingTransportError(BookingError, RuntimeError):
    code = "TRANSPORT"


_ERRORS_BY_CODE: dict[str, type[BookingError]] = {
    error_type.code: error_type
    for error_type in (BookingValidationError, BookingConflictError, BookingNotFoundError, BookingTransportError)
}


def error_from_code(code: str | None, message: str) -> BookingError:
    """Rebuild a taxonomy error from a wire ``error`` code.

    Unknown or missing codes are treated as transport failures.
    """
    error_type = _ERRORS_BY_CODE.get(str(code or "").upper(), BookingTransportError)
    return error_type(message)


@dataclass(frozen=True)
class BookingResult:
    success: bool
    message: str | None = None
    booking: Booking | None = None
    error_code: str | None = None

    @staticmethod
    def ok(message: str, booking: Booking | None = None) -> "BookingResult":
        return BookingResult(success=True, message=message, booking=booking)

    @staticmethod
    def failure(error: BookingError) -> "BookingResult":
        return BookingResult(success=False, message=error.message, error_code=error.code)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": self.success}
        if self.message is not None:
            payload["message"] = self.message
        if self.booking is not None:
            payload["data"] = [self.booking.to_dict()]
        if self.error_code is not None:
            payload["error"] = self.error_code
        return payload
