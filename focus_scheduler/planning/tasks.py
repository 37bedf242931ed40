"""
Task model and due-date resolution.

Due dates arrive from the UI in several shapes ("tomorrow", "2025-12-15",
a full timestamp, or nothing). They are resolved ONCE, before scheduling, into
a concrete timezone-aware datetime; the scheduler never sees anything else.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional, Union

from focus_scheduler.errors import ConfigurationError
from focus_scheduler.planning.working_hours import load_zone, parse_hhmm

logger = logging.getLogger(__name__)

DEFAULT_DUE_DAYS = 7
END_OF_WORKING_DAY = "18:00"

_RELATIVE_DAYS = {"yesterday": -1, "today": 0, "tomorrow": 1}


@dataclass(frozen=True)
class Task:
    """
    A task to place on the calendar.

    manual_chunk_count / manual_chunk_duration_minutes override the automatic
    60-minute chunking when manual_chunk_count > 1.
    """
    id: str
    title: str
    total_duration_minutes: int
    due_date: datetime
    manual_chunk_count: Optional[int] = None
    manual_chunk_duration_minutes: Optional[int] = None

    def validate(self, now: datetime) -> None:
        """
        Reject tasks that can never be scheduled, before any calendar call.
        """
        if not self.title.strip():
            raise ConfigurationError("Task title must not be empty")
        if self.total_duration_minutes <= 0:
            raise ConfigurationError(
                f"Task duration must be positive, got {self.total_duration_minutes} minutes"
            )
        if self.due_date.tzinfo is None:
            raise ConfigurationError("Task due date must be timezone-aware")
        if self.due_date <= now:
            raise ConfigurationError(
                f"Due date {self.due_date.isoformat()} is already in the past"
            )


def _at_end_of_day(day: date, tz, end_of_day: str) -> datetime:
    return datetime.combine(day, parse_hhmm(end_of_day), tzinfo=tz)


def resolve_due_date(
    value: Union[None, str, datetime],
    tz_name: str,
    now: datetime,
    end_of_day: str = END_OF_WORKING_DAY,
) -> datetime:
    """
    Resolve a loosely-typed due date into a timezone-aware datetime.

    - None                              -> now + 7 days
    - datetime                          -> as-is (naive values are read in tz_name)
    - "today" / "tomorrow" / "yesterday" -> that local day at end_of_day
    - "YYYY-MM-DD"                      -> that local day at end_of_day
    - ISO-8601 timestamp                -> parsed (naive values are read in tz_name)
    - anything else                     -> now + 7 days (logged)
    """
    tz = load_zone(tz_name)
    fallback = now + timedelta(days=DEFAULT_DUE_DAYS)

    if value is None:
        return fallback

    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=tz)

    text = value.strip()
    offset = _RELATIVE_DAYS.get(text.lower())
    if offset is not None:
        local_today = now.astimezone(tz).date()
        return _at_end_of_day(local_today + timedelta(days=offset), tz, end_of_day)

    try:
        return _at_end_of_day(date.fromisoformat(text), tz, end_of_day)
    except ValueError:
        pass

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        logger.warning("Unrecognized due date %r, defaulting to %d days from now", value, DEFAULT_DUE_DAYS)
        return fallback

    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=tz)
