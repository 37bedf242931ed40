"""
Planning logic: turn FreeBusy busy blocks into intervals and find free slots.

This module is deterministic and testable (no I/O):
- overlaps / within: the only interval predicates used by the scheduler
- merge_busy_from_freebusy: merges busy intervals from multiple calendars
- normalize_intervals_tz: converts intervals into a single timezone (for sane printing)
- find_free_slot: earliest-fit search for one chunk inside working hours

Intervals are half-open: [start, end). Touching endpoints do not overlap.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

from focus_scheduler.errors import ConfigurationError

if TYPE_CHECKING:
    from focus_scheduler.planning.working_hours import WorkingHours

logger = logging.getLogger(__name__)

# Cursor step used when a candidate collides with a busy interval.
SEARCH_STEP_MINUTES = 15

# Number of day rollovers before the search gives up.
MAX_SEARCH_DAYS = 7


@dataclass(frozen=True)
class Interval:
    """
    Half-open time interval [start, end) between two timezone-aware datetimes.
    """
    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise ValueError(f"Interval end must be after start: {self.start} -> {self.end}")

    def minutes(self) -> int:
        """
        Return the length of the interval in whole minutes.
        """
        return int((self.end - self.start).total_seconds() // 60)


def overlaps(a: Interval, b: Interval) -> bool:
    return a.start < b.end and b.start < a.end


def within(inner: Interval, outer: Interval) -> bool:
    return outer.start <= inner.start and inner.end <= outer.end


def parse_rfc3339(dt_str: str) -> datetime:
    """
    Parse an RFC3339 / ISO-8601 datetime string into a timezone-aware datetime.

    Google returns either an explicit offset (+00:00) or a trailing 'Z' (UTC);
    fromisoformat only understands the former on older interpreters.
    """
    return datetime.fromisoformat(dt_str.replace("Z", "+00:00"))


def to_rfc3339(dt: datetime) -> str:
    """
    Convert a datetime to RFC3339 string (Google accepts ISO-8601 with timezone).
    """
    return dt.isoformat()


def normalize_intervals_tz(intervals: List[Interval], tz) -> List[Interval]:
    """
    Convert all interval start/end datetimes to a single timezone.

    Same instants in time; only the printed offset changes. FreeBusy returns
    UTC while working hours are usually read in local time.
    """
    return [Interval(start=it.start.astimezone(tz), end=it.end.astimezone(tz)) for it in intervals]


def merge_busy_from_freebusy(calendars_busy: Dict[str, Any]) -> List[Interval]:
    """
    Merge busy blocks from a FreeBusy response into one consolidated busy list.

    Args:
        calendars_busy: the "calendars" part of a freebusy.query response:
            {
              "calId": {"busy": [{"start": "...", "end": "..."}, ...]},
              ...
            }

    Returns:
        A sorted list of non-overlapping busy intervals. Adjacent blocks are
        merged too, since the gap between them is empty.
    """
    all_busy: List[Interval] = []

    for _, data in calendars_busy.items():
        for b in data.get("busy", []):
            start = parse_rfc3339(b["start"])
            end = parse_rfc3339(b["end"])
            if end > start:
                all_busy.append(Interval(start=start, end=end))

    all_busy.sort(key=lambda x: x.start)

    merged: List[Interval] = []
    for it in all_busy:
        if merged and it.start <= merged[-1].end:
            last = merged[-1]
            merged[-1] = Interval(start=last.start, end=max(last.end, it.end))
        else:
            merged.append(it)

    return merged


def _round_up_to_step(instant: datetime, tz, step_minutes: int) -> datetime:
    """
    Round `instant` up to the next `step_minutes` boundary of the local wall clock.
    """
    local = instant.astimezone(tz)
    floored = local.replace(minute=local.minute - local.minute % step_minutes, second=0, microsecond=0)
    floored = floored.astimezone(timezone.utc)
    if floored < instant:
        floored += timedelta(minutes=step_minutes)
    return floored


def find_free_slot(
    busy: Iterable[Interval],
    search_from: datetime,
    search_until: datetime,
    work_hours: "WorkingHours",
    duration_minutes: int,
    now: Optional[datetime] = None,
    step_minutes: int = SEARCH_STEP_MINUTES,
    max_days: int = MAX_SEARCH_DAYS,
) -> Optional[Interval]:
    """
    Find the earliest slot of `duration_minutes` that is free, inside working
    hours and ends no later than `search_until`.

    Algorithm (earliest fit, day by day, fixed-step scan):
    1. Start at max(search_from, now); never propose a slot in the past.
       When "now" wins, the cursor is rounded up to the next step boundary.
    2. Clamp the cursor into the current day's working window. At or past the
       window end, roll to the next day's start (at most `max_days` rollovers).
    3. Candidate = [cursor, cursor + duration):
       - ends after the day's window -> next day
       - ends after search_until     -> None (not enough time before due date)
       - overlaps a busy interval    -> cursor += step, retry
    4. Otherwise return the candidate.

    Returns:
        The chosen Interval (UTC), or None when no slot exists.
    """
    if duration_minutes <= 0:
        raise ConfigurationError(f"Chunk duration must be positive, got {duration_minutes}")

    busy = list(busy)
    duration = timedelta(minutes=int(duration_minutes))
    step = timedelta(minutes=int(step_minutes))
    now = now or datetime.now(timezone.utc)

    if search_from >= now:
        cursor = search_from.astimezone(timezone.utc)
    else:
        cursor = _round_up_to_step(now, work_hours.tzinfo, int(step_minutes))

    rollovers = 0
    while rollovers < max_days:
        window = work_hours.window_for(cursor)

        if cursor < window.start:
            cursor = window.start

        if cursor >= window.end:
            cursor = work_hours.next_day_start(cursor)
            rollovers += 1
            continue

        candidate = Interval(start=cursor, end=cursor + duration)

        if candidate.end > window.end:
            # Doesn't fit in what is left of today's working hours.
            cursor = work_hours.next_day_start(cursor)
            rollovers += 1
            continue

        if candidate.end > search_until:
            logger.info(
                "No %d-minute slot before %s (cursor reached %s)",
                duration_minutes, to_rfc3339(search_until), to_rfc3339(cursor),
            )
            return None

        conflict = next((b for b in busy if overlaps(candidate, b)), None)
        if conflict is not None:
            logger.debug(
                "Candidate %s-%s conflicts with busy %s-%s",
                to_rfc3339(candidate.start), to_rfc3339(candidate.end),
                to_rfc3339(conflict.start), to_rfc3339(conflict.end),
            )
            cursor = cursor + step
            continue

        return candidate

    logger.info("No %d-minute slot within %d days of search start", duration_minutes, max_days)
    return None
