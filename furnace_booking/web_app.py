from __future__ import annotations

import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable

from flask import Flask, jsonify, request

from .config import Settings, configure_logging, create_store
from .errors import BookingError, BookingResult
from .schedule import describe_day
from .schemas import BookingAction, parse_action
from .store import BookingStore
from .yaml_store import YamlBookingStore

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = {
    "VALIDATION": 400,
    "NOT_FOUND": 404,
    "CONFLICT": 409,
    "TRANSPORT": 503,
}


def create_app(
    data_dir: str | Path | None = None,
    store: BookingStore | None = None,
    now_provider: Callable[[], datetime] | None = None,
) -> Flask:
    app = Flask(__name__)
    if store is None:
        if data_dir is not None:
            store = YamlBookingStore(data_dir, now_provider=now_provider)
        else:
            store = create_store()
    app.config["BOOKING_STORE"] = store

    def _requested_day() -> date | None:
        raw = str(request.args.get("date", "")).strip()
        try:
            return date.fromisoformat(raw)
        except ValueError:
            return None

    def _bad_date() -> Any:
        return jsonify({"success": False, "message": "A date parameter in YYYY-MM-DD format is required."}), 400

    def _read_failure(error: BookingError) -> Any:
        return jsonify({"success": False, "message": error.message, "error": error.code, "data": []}), 503

    @app.after_request
    def add_cors_headers(response: Any) -> Any:
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Methods"] = "GET,POST,OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type"
        return response

    @app.get("/api/bookings")
    def list_bookings() -> Any:
        day = _requested_day()
        if day is None:
            return _bad_date()

        bookings, error = store.read_bookings(day)
        if error is not None:
            return _read_failure(error)
        return jsonify({"success": True, "data": [booking.to_dict() for booking in bookings]})

    @app.post("/api/bookings")
    def write_booking() -> Any:
        # Apps Script style clients post JSON as text/plain, so parse regardless of content type.
        payload = request.get_json(force=True, silent=True)
        if not isinstance(payload, dict):
            return jsonify({"success": False, "message": "Request body must be a JSON object.", "error": "VALIDATION"}), 400

        try:
            action = parse_action(payload.get("action"))
        except BookingError as error:
            return jsonify(BookingResult.failure(error).to_dict()), 400

        if action is BookingAction.CREATE:
            result = store.create_booking(payload)
        elif action is BookingAction.UPDATE:
            result = store.update_booking(payload)
        else:
            result = store.delete_booking(payload.get("id"))

        status = 200 if result.success else _STATUS_BY_ERROR.get(str(result.error_code), 400)
        return jsonify(result.to_dict()), status

    @app.get("/api/schedule")
    def get_schedule() -> Any:
        day = _requested_day()
        if day is None:
            return _bad_date()

        view = describe_day(store, day)
        return jsonify(view), (200 if view["success"] else 503)

    return app


if __name__ == "__main__":
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    app = create_app(store=create_store(settings))
    app.run(host="127.0.0.1", port=5000, debug=False)
