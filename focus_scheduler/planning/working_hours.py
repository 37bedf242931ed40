"""
Working-hours policy (hard constraint).

All instants handled by the scheduler are timezone-aware and compared as
absolute points in time. The IANA timezone stored here is consulted only when
a day's window is computed, never the host machine's local clock.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from focus_scheduler.errors import ConfigurationError
from focus_scheduler.planner import Interval, within


def parse_hhmm(value: str) -> time:
    """
    Parse "HH:MM" into a time. Raises ConfigurationError on anything else.
    """
    try:
        hh, mm = value.strip().split(":")
        return time(hour=int(hh), minute=int(mm))
    except (AttributeError, ValueError) as e:
        raise ConfigurationError(f"Invalid time of day {value!r}, expected HH:MM") from e


def load_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigurationError(f"Unknown timezone {name!r}") from e


@dataclass(frozen=True)
class WorkingHours:
    """
    Per-day [start, end) window in which chunks may be placed.

    start/end:
    - "HH:MM" wall-clock times in `timezone`
    - start must be strictly before end (no windows crossing midnight)
    """
    start: str = "09:00"
    end: str = "18:00"
    timezone: str = "UTC"

    def __post_init__(self) -> None:
        if self.end_time <= self.start_time:
            raise ConfigurationError(
                f"Working hours end ({self.end}) must be after start ({self.start})"
            )
        load_zone(self.timezone)

    @property
    def start_time(self) -> time:
        return parse_hhmm(self.start)

    @property
    def end_time(self) -> time:
        return parse_hhmm(self.end)

    @property
    def daily_minutes(self) -> int:
        """Length of one working window on the wall clock."""
        start, end = self.start_time, self.end_time
        return (end.hour * 60 + end.minute) - (start.hour * 60 + start.minute)

    @property
    def tzinfo(self) -> ZoneInfo:
        return load_zone(self.timezone)

    def local_date(self, instant: datetime) -> date:
        """
        Return the calendar day containing `instant` in the policy's timezone.
        """
        if instant.tzinfo is None:
            raise ValueError("Working-hours math requires timezone-aware datetimes")
        return instant.astimezone(self.tzinfo).date()

    def window_on(self, day: date) -> Interval:
        """
        Return the working window of a local calendar day, expressed in UTC.
        """
        tz = self.tzinfo
        start = datetime.combine(day, self.start_time, tzinfo=tz).astimezone(timezone.utc)
        end = datetime.combine(day, self.end_time, tzinfo=tz).astimezone(timezone.utc)
        return Interval(start=start, end=end)

    def window_for(self, instant: datetime) -> Interval:
        return self.window_on(self.local_date(instant))

    def next_day_start(self, instant: datetime) -> datetime:
        """
        Start of the working window on the local day after `instant`.
        """
        return self.window_on(self.local_date(instant) + timedelta(days=1)).start

    def contains(self, interval: Interval) -> bool:
        """
        True if `interval` lies inside the working window of the day it starts on.
        """
        return within(interval, self.window_for(interval.start))
