from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Mapping

from .booking import Booking
from .errors import BookingError, BookingResult, BookingValidationError
from .schemas import BookingUpdate, NewBooking, parse_booking_update, parse_new_booking

logger = logging.getLogger(__name__)

DELETED_MESSAGE = "Booking deleted"


class BookingStore(ABC):
    """Contract shared by the local and remote booking backends.

    The public operations never raise ``BookingError``: failures are returned
    as unsuccessful ``BookingResult`` values, and failed reads come back as an
    empty list with the error kept in ``last_error``.
    """

    def __init__(self) -> None:
        self.last_error: BookingError | None = None

    def list_bookings(self, day: date) -> list[Booking]:
        bookings, self.last_error = self.read_bookings(day)
        return bookings

    def read_bookings(self, day: date) -> tuple[list[Booking], BookingError | None]:
        """Like ``list_bookings`` but hands the failure back with the result.

        Nothing is stored on the instance, so concurrent callers sharing one
        store each see their own outcome.
        """
        try:
            return self._list_bookings(day), None
        except BookingError as error:
            logger.warning("Failed to list bookings for %s: %s", day.isoformat(), error.message)
            return [], error

    def create_booking(self, new_booking: NewBooking | Mapping[str, Any]) -> BookingResult:
        try:
            request = parse_new_booking(new_booking)
            return self._create_booking(request)
        except BookingError as error:
            return self._reject("create", error)

    def update_booking(self, update: BookingUpdate | Mapping[str, Any]) -> BookingResult:
        try:
            request = parse_booking_update(update)
            return self._update_booking(request)
        except BookingError as error:
            return self._reject("update", error)

    def delete_booking(self, booking_id: str | None) -> BookingResult:
        try:
            normalized = str(booking_id or "").strip()
            if not normalized:
                raise BookingValidationError("Booking id is required.")
            return self._delete_booking(normalized)
        except BookingError as error:
            return self._reject("delete", error)

    def _reject(self, operation: str, error: BookingError) -> BookingResult:
        logger.warning("Booking %s rejected (%s): %s", operation, error.code, error.message)
        return BookingResult.failure(error)

    @abstractmethod
    def _list_bookings(self, day: date) -> list[Booking]:
        raise NotImplementedError

    @abstractmethod
    def _create_booking(self, request: NewBooking) -> BookingResult:
        raise NotImplementedError

    @abstractmethod
    def _update_booking(self, request: BookingUpdate) -> BookingResult:
        raise NotImplementedError

    @abstractmethod
    def _delete_booking(self, booking_id: str) -> BookingResult:
        raise NotImplementedError
