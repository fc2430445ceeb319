from __future__ import annotations

import logging
from datetime import date
from typing import Any

import requests

from .booking import Booking
from .errors import BookingResult, BookingTransportError, error_from_code
from .schemas import BookingAction, BookingUpdate, NewBooking
from .store import BookingStore

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0

_FALLBACK_MESSAGES = {
    BookingAction.CREATE: "Failed to connect to backend.",
    BookingAction.UPDATE: "Update failed.",
    BookingAction.DELETE: "Delete failed.",
}


class RemoteBookingStore(BookingStore):
    """Booking store backed by a single HTTP endpoint.

    Reads are ``GET <api_url>?date=YYYY-MM-DD``; writes are ``POST <api_url>``
    with a JSON body carrying an ``action`` discriminator. Conflict checks are
    made by the server against its full collection.
    """

    def __init__(
        self,
        api_url: str,
        timeout: float | None = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__()
        self.api_url = api_url
        self.timeout = timeout
        self._session = session or requests.Session()

    def _list_bookings(self, day: date) -> list[Booking]:
        try:
            response = self._session.get(self.api_url, params={"date": day.isoformat()}, timeout=self.timeout)
            response.raise_for_status()
            body = response.json()
        except (requests.RequestException, ValueError) as error:
            raise BookingTransportError(f"Error fetching bookings: {error}") from error

        if not isinstance(body, dict) or not body.get("success", False):
            message = body.get("message") if isinstance(body, dict) else None
            raise BookingTransportError(str(message or "Backend returned an unsuccessful response."))

        try:
            return [Booking.from_dict(row) for row in body.get("data") or []]
        except (KeyError, TypeError, ValueError) as error:
            raise BookingTransportError(f"Backend returned malformed bookings: {error}") from error

    def _create_booking(self, request: NewBooking) -> BookingResult:
        return self._post(BookingAction.CREATE, request.to_payload())

    def _update_booking(self, request: BookingUpdate) -> BookingResult:
        return self._post(BookingAction.UPDATE, request.to_payload())

    def _delete_booking(self, booking_id: str) -> BookingResult:
        return self._post(BookingAction.DELETE, {"id": booking_id})

    def _post(self, action: BookingAction, payload: dict[str, Any]) -> BookingResult:
        fallback = _FALLBACK_MESSAGES[action]
        try:
            response = self._session.post(self.api_url, json={"action": action.value, **payload}, timeout=self.timeout)
            body = response.json()
        except (requests.RequestException, ValueError) as error:
            logger.error("%s request to %s failed: %s", action.value, self.api_url, error)
            raise BookingTransportError(fallback) from error

        if not isinstance(body, dict) or "success" not in body:
            raise BookingTransportError(fallback)

        message = body.get("message")
        if not body["success"]:
            raise error_from_code(body.get("error"), str(message or fallback))

        rows = body.get("data") or []
        try:
            booking = Booking.from_dict(rows[0]) if rows else None
        except (KeyError, TypeError, ValueError) as error:
            raise BookingTransportError(f"Backend returned a malformed booking: {error}") from error
        return BookingResult(success=True, message=(str(message) if message else None), booking=booking)
