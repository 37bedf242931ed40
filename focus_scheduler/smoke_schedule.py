"""Smoke test: schedule a sample task against the real Google Calendar.

SAFETY DESIGN
-------------
- By default, this script DOES NOT write anything: events are printed as drafts.
- To actually create events, you must explicitly set:
      CONFIRM_CREATE="true"
  in your environment.

Reads:
- GOOGLE_ACCESS_TOKEN (required), GOOGLE_REFRESH_TOKEN (optional)
- DEFAULT_TIMEZONE / WORKING_HOURS_START / WORKING_HOURS_END / PLANNING_CALENDAR_IDS

Run:
    python -u -m focus_scheduler.smoke_schedule
"""

from __future__ import annotations

import os
from datetime import datetime
from typing import List

from focus_scheduler import service
from focus_scheduler.config import Settings, configure_logging, load_settings
from focus_scheduler.gateway import CalendarGateway
from focus_scheduler.google_auth import CredentialProvider
from focus_scheduler.planner import Interval, normalize_intervals_tz
from focus_scheduler.planning.working_hours import WorkingHours


class DraftGateway(CalendarGateway):
    """
    Reads busy time from the real calendar but only prints events.
    """

    def __init__(self, inner: CalendarGateway, tz):
        self.inner = inner
        self.tz = tz
        self.drafts = 0

    def list_busy(self, range_start: datetime, range_end: datetime) -> List[Interval]:
        busy = self.inner.list_busy(range_start, range_end)
        print(f"\n=== Busy intervals ({len(busy)}) ===")
        for b in normalize_intervals_tz(busy, self.tz):
            print(f"- {b.start.isoformat()} → {b.end.isoformat()} ({b.minutes()} min)")
        return busy

    def create_event(self, label: str, interval: Interval) -> str:
        self.drafts += 1
        local = normalize_intervals_tz([interval], self.tz)[0]
        print(f"- DRAFT {label}: {local.start.isoformat()} → {local.end.isoformat()}")
        return f"draft-{self.drafts}"

    def delete_event(self, event_id: str) -> None:
        print(f"- DRAFT delete {event_id}")


def main() -> None:
    settings = load_settings()
    configure_logging(settings.log_level)

    access_token = os.environ["GOOGLE_ACCESS_TOKEN"]
    refresh_token = os.getenv("GOOGLE_REFRESH_TOKEN") or None

    # Safety gate
    confirm_create = os.getenv("CONFIRM_CREATE", "").strip().lower() == "true"

    def factory(credentials: CredentialProvider, work_hours: WorkingHours, s: Settings) -> CalendarGateway:
        real = service.google_gateway(credentials, work_hours, s)
        return real if confirm_create else DraftGateway(real, work_hours.tzinfo)

    task = {
        "id": "smoke-1",
        "title": "Smoke test focus block",
        "duration": 90,
        "due_date": "tomorrow",
    }

    result = service.schedule_task(
        task,
        access_token=access_token,
        refresh_token=refresh_token,
        settings=settings,
        gateway_factory=factory,
    )

    print("\n=== RESULT ===")
    print(result.message)
    for slot in result.to_dict()["slots"]:
        print(f"- Part {slot['part']}: {slot['start']} → {slot['end']} id={slot['event_id']}")

    if not confirm_create:
        print("\n=== SAFETY GATE ===")
        print('No events were created. To create them, set CONFIRM_CREATE="true" and re-run.')


if __name__ == "__main__":
    main()
