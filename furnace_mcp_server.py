from __future__ import annotations

from datetime import date
from typing import Any

from mcp.server.fastmcp import FastMCP

from furnace_booking import Settings, configure_logging, create_store, describe_day

mcp = FastMCP(
    "Tube Furnace Booking MCP Server",
    instructions="Expose the shared tube furnace schedule and its booking operations.",
    json_response=True,
)

SETTINGS = Settings.from_env()
STORE = create_store(SETTINGS)


@mcp.tool()
def list_bookings(day: str) -> dict[str, Any]:
    """Return bookings overlapping the given YYYY-MM-DD day."""
    bookings, error = STORE.read_bookings(date.fromisoformat(day))
    payload: dict[str, Any] = {"success": error is None, "data": [booking.to_dict() for booking in bookings]}
    if error is not None:
        payload["message"] = error.message
        payload["error"] = error.code
    return payload


@mcp.tool()
def day_schedule(day: str) -> dict[str, Any]:
    """Return the per-day segments and bookable hours for the given YYYY-MM-DD day; success is False when the fetch failed."""
    view = describe_day(STORE, date.fromisoformat(day))
    view["bookable_hours"] = [slot["hour"] for slot in view.pop("slots") if slot["bookable"]]
    return view


@mcp.tool()
def create_booking(
    start_iso: str,
    end_iso: str,
    name: str,
    sample: str,
    gas: str,
    notes: str | None = None,
) -> dict[str, Any]:
    """Create a booking using ISO timestamps (YYYY-MM-DDTHH:MM:SS, local clock)."""
    result = STORE.create_booking(
        {
            "startDateTime": start_iso,
            "endDateTime": end_iso,
            "name": name,
            "sample": sample,
            "gas": gas,
            "notes": notes,
        }
    )
    return result.to_dict()


@mcp.tool()
def update_booking(
    booking_id: str,
    start_iso: str,
    end_iso: str,
    name: str,
    sample: str,
    gas: str,
    notes: str | None = None,
) -> dict[str, Any]:
    """Replace an existing booking; the new range is checked against every other booking."""
    result = STORE.update_booking(
        {
            "id": booking_id,
            "startDateTime": start_iso,
            "endDateTime": end_iso,
            "name": name,
            "sample": sample,
            "gas": gas,
            "notes": notes,
        }
    )
    return result.to_dict()


@mcp.tool()
def delete_booking(booking_id: str) -> dict[str, Any]:
    """Delete a booking. Unknown ids are reported as deleted."""
    return STORE.delete_booking(booking_id).to_dict()


def main() -> None:
    configure_logging(SETTINGS.log_level)
    mcp.run()


if __name__ == "__main__":
    main()
