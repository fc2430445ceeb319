from __future__ import annotations

from datetime import date, datetime
from pathlib import Path
import sys
import tempfile
import traceback

WORKSPACE_ROOT = Path(__file__).resolve().parent.parent
if str(WORKSPACE_ROOT) not in sys.path:
    sys.path.insert(0, str(WORKSPACE_ROOT))

from furnace_booking import DaySchedule, YamlBookingStore, configure_logging  # noqa: E402


def main() -> int:
    configure_logging("WARNING")
    print("[INFO] Tube Furnace Booking Quick Check")

    with tempfile.TemporaryDirectory() as temp_dir:
        store = YamlBookingStore(Path(temp_dir) / "data")
        schedule = DaySchedule(store, day=date(2026, 2, 23))

        overnight = schedule.submit(
            {
                "startDateTime": "2026-02-23T22:00:00",
                "endDateTime": "2026-02-24T03:00:00",
                "name": "Quick Check",
                "sample": "LiFePO4",
                "gas": "Ar",
            }
        )
        print(f"[OK] Overnight booking: {overnight.message}")

        clash = store.create_booking(
            {
                "startDateTime": "2026-02-24T02:00:00",
                "endDateTime": "2026-02-24T04:00:00",
                "name": "Quick Check",
                "sample": "NMC811",
                "gas": "O2",
            }
        )
        if clash.success:
            print("[ERROR] Overlapping booking was accepted.")
            return 1
        print(f"[OK] Overlap rejected: {clash.message}")

        adjacent = store.create_booking(
            {
                "startDateTime": datetime(2026, 2, 24, 3, 0),
                "endDateTime": datetime(2026, 2, 24, 5, 0),
                "name": "Quick Check",
                "sample": "NMC811",
                "gas": "O2",
            }
        )
        print(f"[OK] Back-to-back booking: {adjacent.message}")

        for day in (date(2026, 2, 23), date(2026, 2, 24)):
            for segment in schedule.select_day(day):
                print(
                    f"[OK] {day.isoformat()} {segment.start_hour:02d}:00 "
                    f"+{segment.duration_hours:g}h {segment.booking.sample}"
                    f"{' (continues)' if segment.continues_from_prior_day else ''}"
                    f"{' (next day)' if segment.continues_into_next_day else ''}"
                )

        print(f"[OK] Stored bookings: {len(store.get_all_bookings())}")

    print("[DONE] Quick check completed successfully.")
    return 0


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except Exception:
        print("[ERROR] Quick check failed.")
        traceback.print_exc()
        raise SystemExit(1)
