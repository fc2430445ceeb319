import tempfile
import unittest
from datetime import date, datetime
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

from furnace_booking import RemoteBookingStore, YamlBookingStore
from furnace_booking.web_app import create_app


def _payload(start: str, end: str, **overrides: Any) -> dict[str, Any]:
    payload = {
        "startDateTime": start,
        "endDateTime": end,
        "name": "Rosalind",
        "sample": "Graphene oxide",
        "gas": "H2/Ar",
    }
    payload.update(overrides)
    return payload


class TestWebApp(unittest.TestCase):
    def setUp(self) -> None:
        self._temp_dir = tempfile.TemporaryDirectory()
        self.data_dir = Path(self._temp_dir.name) / "data"
        self.app = create_app(self.data_dir, now_provider=lambda: datetime(2024, 1, 1, 7, 0))
        self.client = self.app.test_client()

    def tearDown(self) -> None:
        self._temp_dir.cleanup()

    def _post(self, action: str, body: dict[str, Any]) -> Any:
        return self.client.post("/api/bookings", json={"action": action, **body})

    def test_create_returns_created_booking(self) -> None:
        response = self._post("CREATE", _payload("2024-01-01T09:00:00", "2024-01-01T10:00:00"))

        self.assertEqual(response.status_code, 200)
        payload = response.get_json()
        self.assertTrue(payload["success"])
        self.assertEqual(payload["message"], "Booking created")
        self.assertEqual(payload["data"][0]["startDateTime"], "2024-01-01T09:00:00")
        self.assertEqual(payload["data"][0]["createdAt"], "2024-01-01T07:00:00")
        self.assertEqual(response.headers["Access-Control-Allow-Origin"], "*")

    def test_list_by_date(self) -> None:
        self._post("CREATE", _payload("2024-01-01T22:00:00", "2024-01-02T03:00:00"))

        response = self.client.get("/api/bookings?date=2024-01-02")

        self.assertEqual(response.status_code, 200)
        payload = response.get_json()
        self.assertTrue(payload["success"])
        self.assertEqual(len(payload["data"]), 1)

    def test_list_empty_day(self) -> None:
        response = self.client.get("/api/bookings?date=2024-05-05")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), {"success": True, "data": []})

    def test_list_requires_valid_date(self) -> None:
        self.assertEqual(self.client.get("/api/bookings").status_code, 400)
        self.assertEqual(self.client.get("/api/bookings?date=01/02/2024").status_code, 400)

    def test_error_statuses(self) -> None:
        created = self._post("CREATE", _payload("2024-01-01T09:00:00", "2024-01-01T11:00:00")).get_json()["data"][0]

        conflict = self._post("CREATE", _payload("2024-01-01T10:00:00", "2024-01-01T12:00:00"))
        self.assertEqual(conflict.status_code, 409)
        self.assertEqual(conflict.get_json()["error"], "CONFLICT")

        invalid = self._post("CREATE", _payload("2024-01-01T10:00:00", "2024-01-01T09:00:00"))
        self.assertEqual(invalid.status_code, 400)
        self.assertEqual(invalid.get_json()["error"], "VALIDATION")

        missing = self._post("UPDATE", {**_payload("2024-01-01T13:00:00", "2024-01-01T14:00:00"), "id": "nope"})
        self.assertEqual(missing.status_code, 404)

        updated = self._post("UPDATE", {**_payload("2024-01-01T09:30:00", "2024-01-01T10:30:00"), "id": created["id"]})
        self.assertEqual(updated.status_code, 200)
        self.assertEqual(updated.get_json()["data"][0]["createdAt"], created["createdAt"])

    def test_delete_is_idempotent(self) -> None:
        created = self._post("CREATE", _payload("2024-01-01T09:00:00", "2024-01-01T10:00:00")).get_json()["data"][0]

        first = self._post("DELETE", {"id": created["id"]})
        second = self._post("DELETE", {"id": created["id"]})

        self.assertEqual(first.status_code, 200)
        self.assertEqual(second.status_code, 200)
        self.assertTrue(second.get_json()["success"])

    def test_unknown_action_and_bad_body(self) -> None:
        unknown = self._post("ARCHIVE", {"id": "x"})
        self.assertEqual(unknown.status_code, 400)
        self.assertFalse(unknown.get_json()["success"])

        not_json = self.client.post("/api/bookings", data="not json", content_type="text/plain")
        self.assertEqual(not_json.status_code, 400)

    def test_plain_text_json_body_is_accepted(self) -> None:
        import json

        response = self.client.post(
            "/api/bookings",
            data=json.dumps({"action": "CREATE", **_payload("2024-01-01T09:00:00", "2024-01-01T10:00:00")}),
            content_type="text/plain",
        )

        self.assertEqual(response.status_code, 200)

    def test_schedule_projects_day(self) -> None:
        self._post("CREATE", _payload("2024-01-01T22:00:00", "2024-01-02T03:00:00"))

        response = self.client.get("/api/schedule?date=2024-01-02")

        self.assertEqual(response.status_code, 200)
        payload = response.get_json()
        self.assertEqual(payload["date"], "2024-01-02")
        self.assertEqual(len(payload["segments"]), 1)
        segment = payload["segments"][0]
        self.assertEqual(segment["startHour"], 0)
        self.assertEqual(segment["durationHours"], 3)
        self.assertTrue(segment["continuesFromPriorDay"])
        self.assertEqual(len(payload["slots"]), 24)
        self.assertEqual([slot["hour"] for slot in payload["slots"] if not slot["bookable"]], [0, 1, 2])

    def test_unreadable_storage_is_service_unavailable(self) -> None:
        bookings_file = self.data_dir / "tube_furnace_bookings_v2.yaml"
        bookings_file.unlink()
        bookings_file.mkdir()

        listed = self.client.get("/api/bookings?date=2024-01-01")
        schedule = self.client.get("/api/schedule?date=2024-01-01")

        self.assertEqual(listed.status_code, 503)
        self.assertEqual(listed.get_json()["error"], "TRANSPORT")
        self.assertEqual(listed.get_json()["data"], [])
        self.assertEqual(schedule.status_code, 503)
        self.assertFalse(schedule.get_json()["success"])
        self.assertEqual(schedule.get_json()["error"], "TRANSPORT")


class _FakeResponse:
    def __init__(self, status_code: int, body: Any) -> None:
        self.status_code = status_code
        self._body = body

    def json(self) -> Any:
        if self._body is None:
            raise ValueError("No JSON body")
        return self._body

    def raise_for_status(self) -> None:
        import requests

        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")


class _FlaskSession:
    """Routes a RemoteBookingStore's requests into a Flask test client."""

    def __init__(self, client: Any) -> None:
        self.client = client
        self.timeouts: list[Any] = []

    def get(self, url: str, params: dict[str, str] | None = None, timeout: Any = None) -> _FakeResponse:
        self.timeouts.append(timeout)
        response = self.client.get(urlsplit(url).path, query_string=params or {})
        return _FakeResponse(response.status_code, response.get_json(silent=True))

    def post(self, url: str, json: Any = None, timeout: Any = None) -> _FakeResponse:
        self.timeouts.append(timeout)
        response = self.client.post(urlsplit(url).path, json=json)
        return _FakeResponse(response.status_code, response.get_json(silent=True))


class _BrokenSession:
    def get(self, *args: Any, **kwargs: Any) -> Any:
        import requests

        raise requests.ConnectionError("connection refused")

    def post(self, *args: Any, **kwargs: Any) -> Any:
        import requests

        raise requests.ConnectionError("connection refused")


class TestRemoteBookingStore(unittest.TestCase):
    def setUp(self) -> None:
        self._temp_dir = tempfile.TemporaryDirectory()
        self.local = YamlBookingStore(Path(self._temp_dir.name) / "data")
        self.session = _FlaskSession(create_app(store=self.local).test_client())
        self.remote = RemoteBookingStore("http://furnace.test/api/bookings", timeout=5, session=self.session)

    def tearDown(self) -> None:
        self._temp_dir.cleanup()

    def test_round_trip_matches_local_semantics(self) -> None:
        created = self.remote.create_booking(_payload("2024-01-01T22:00:00", "2024-01-02T03:00:00"))
        self.assertTrue(created.success)
        self.assertEqual(self.local.get_all_bookings(), [created.booking])

        adjacent = self.remote.create_booking(_payload("2024-01-02T03:00:00", "2024-01-02T04:00:00"))
        self.assertTrue(adjacent.success)

        clash = self.remote.create_booking(_payload("2024-01-02T02:00:00", "2024-01-02T05:00:00"))
        self.assertFalse(clash.success)
        self.assertEqual(clash.error_code, "CONFLICT")
        self.assertEqual(clash.message, "Time slot conflict detected across dates.")

        moved = self.remote.update_booking(
            {**_payload("2024-01-01T21:00:00", "2024-01-02T02:00:00"), "id": created.booking.id}
        )
        self.assertTrue(moved.success)
        self.assertEqual(moved.booking.created_at, created.booking.created_at)

        listed = self.remote.list_bookings(date(2024, 1, 2))
        self.assertEqual({booking.id for booking in listed}, {created.booking.id, adjacent.booking.id})
        self.assertIsNone(self.remote.last_error)
        self.assertEqual(set(self.session.timeouts), {5})

    def test_not_found_and_delete(self) -> None:
        missing = self.remote.update_booking({**_payload("2024-01-01T09:00:00", "2024-01-01T10:00:00"), "id": "nope"})
        self.assertEqual(missing.error_code, "NOT_FOUND")
        self.assertEqual(missing.message, "Booking not found")

        self.assertTrue(self.remote.delete_booking("nope").success)
        self.assertTrue(self.remote.delete_booking("nope").success)

    def test_invalid_submission_never_reaches_network(self) -> None:
        result = self.remote.create_booking(_payload("2024-01-01T10:00:00", "2024-01-01T09:00:00"))

        self.assertEqual(result.error_code, "VALIDATION")
        self.assertEqual(self.session.timeouts, [])

    def test_connection_failure_degrades_to_results(self) -> None:
        remote = RemoteBookingStore("http://furnace.test/api/bookings", session=_BrokenSession())

        self.assertEqual(remote.list_bookings(date(2024, 1, 1)), [])
        self.assertIsNotNone(remote.last_error)
        self.assertEqual(remote.last_error.code, "TRANSPORT")

        created = remote.create_booking(_payload("2024-01-01T09:00:00", "2024-01-01T10:00:00"))
        self.assertFalse(created.success)
        self.assertEqual(created.error_code, "TRANSPORT")
        self.assertEqual(created.message, "Failed to connect to backend.")

        updated = remote.update_booking({**_payload("2024-01-01T09:00:00", "2024-01-01T10:00:00"), "id": "x"})
        self.assertEqual(updated.message, "Update failed.")
        self.assertEqual(remote.delete_booking("x").message, "Delete failed.")

    def test_http_error_on_read_is_transport_failure(self) -> None:
        class _ServerErrorSession:
            def get(self, *args: Any, **kwargs: Any) -> _FakeResponse:
                return _FakeResponse(500, {"success": False})

        remote = RemoteBookingStore("http://furnace.test/api/bookings", session=_ServerErrorSession())

        self.assertEqual(remote.list_bookings(date(2024, 1, 1)), [])
        self.assertEqual(remote.last_error.code, "TRANSPORT")

    def test_successful_read_clears_last_error(self) -> None:
        remote = RemoteBookingStore("http://furnace.test/api/bookings", session=_BrokenSession())
        remote.list_bookings(date(2024, 1, 1))
        self.assertIsNotNone(remote.last_error)

        remote._session = self.session
        self.assertEqual(remote.list_bookings(date(2024, 1, 1)), [])
        self.assertIsNone(remote.last_error)


if __name__ == "__main__":
    unittest.main()
