"""
Scheduling orchestrator: place every chunk of a task, then create the events.

Placement is sequential and pure: each chunk's search runs against the
busy snapshot plus every slot already chosen in this run, starting from a
cursor that moves past the previous chunk plus a fixed break. Only once every
chunk has a slot are the calendar events created, one per chunk.

Event creation failures (GatewayApiError) are soft: the chunk is reported as
failed and the run continues. The reserved slot is NOT released, so later
chunks never slide into it; the result names the failed parts instead.
A GatewayAuthError stops creation; the result still carries the ids of the
events created before it.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, List, Optional

from focus_scheduler.errors import (
    ConfigurationError,
    GatewayApiError,
    GatewayAuthError,
    InsufficientTimeError,
)
from focus_scheduler.planner import Interval, find_free_slot, to_rfc3339
from focus_scheduler.planning import report
from focus_scheduler.planning.chunks import Chunk, build_chunks, plan_chunks
from focus_scheduler.planning.report import PlacedSlot, ScheduleResult
from focus_scheduler.planning.tasks import Task
from focus_scheduler.planning.working_hours import WorkingHours

if TYPE_CHECKING:
    from focus_scheduler.gateway import CalendarGateway

logger = logging.getLogger(__name__)

# Deliberate break between two chunks of the same task.
MIN_GAP_MINUTES = 60


def _advance_cursor(slot: Interval, work_hours: WorkingHours, gap: timedelta) -> datetime:
    cursor = slot.end + gap
    if cursor >= work_hours.window_for(slot.start).end:
        cursor = work_hours.next_day_start(slot.start)
    return cursor


def validate_plan(task: Task, work_hours: WorkingHours, now: datetime) -> List[int]:
    """
    Validate the task and return its chunk durations.

    Raises:
        ConfigurationError: invalid task, invalid chunk plan, or a chunk that
        cannot fit in a single working window.
    """
    task.validate(now)
    durations = plan_chunks(
        task.total_duration_minutes,
        task.manual_chunk_count,
        task.manual_chunk_duration_minutes,
    )
    longest = max(durations)
    if longest > work_hours.daily_minutes:
        raise ConfigurationError(
            f"A {longest}-minute chunk does not fit in the {work_hours.daily_minutes}-minute "
            f"working day ({work_hours.start}-{work_hours.end})"
        )
    return durations


def place_chunks(
    chunks: List[Chunk],
    window_start: datetime,
    due_date: datetime,
    busy: List[Interval],
    work_hours: WorkingHours,
    now: Optional[datetime] = None,
    min_gap_minutes: int = MIN_GAP_MINUTES,
) -> List[Interval]:
    """
    Choose a slot for every chunk, in order, without touching the calendar.

    Raises:
        InsufficientTimeError: some chunk has no slot before `due_date`.
    """
    occupied: List[Interval] = list(busy)
    gap = timedelta(minutes=int(min_gap_minutes))
    cursor = window_start
    slots: List[Interval] = []
    total = len(chunks)

    for chunk in chunks:
        slot = find_free_slot(occupied, cursor, due_date, work_hours, chunk.duration_minutes, now=now)
        if slot is None:
            raise InsufficientTimeError(
                f"No slot for chunk {chunk.ordinal}/{total} before {to_rfc3339(due_date)}",
                ordinal=chunk.ordinal,
                total=total,
            )

        logger.info("Chunk %d/%d placed at %s-%s", chunk.ordinal, total,
                    to_rfc3339(slot.start), to_rfc3339(slot.end))
        occupied.append(slot)
        slots.append(slot)
        cursor = _advance_cursor(slot, work_hours, gap)

    return slots


def schedule(
    task: Task,
    window_start: datetime,
    busy: List[Interval],
    work_hours: WorkingHours,
    gateway: "CalendarGateway",
    now: Optional[datetime] = None,
    min_gap_minutes: int = MIN_GAP_MINUTES,
) -> ScheduleResult:
    """
    Schedule `task` between window_start and task.due_date.

    Raises:
        ConfigurationError: invalid task or chunk plan (no calendar call made).
        GatewayValidationError: propagated from the gateway.
    """
    now = now or datetime.now(timezone.utc)
    durations = validate_plan(task, work_hours, now)
    chunks = build_chunks(durations)
    total = len(chunks)
    logger.info("Scheduling %r: %d minutes as chunks %s, due %s",
                task.title, task.total_duration_minutes, durations, to_rfc3339(task.due_date))

    try:
        slots = place_chunks(chunks, window_start, task.due_date, busy, work_hours,
                             now=now, min_gap_minutes=min_gap_minutes)
    except InsufficientTimeError as e:
        logger.warning("%s (task %r)", e, task.title)
        return report.insufficient_time(task.due_date, e.ordinal, e.total, work_hours.tzinfo)

    placed: List[PlacedSlot] = []
    for i, (chunk, slot) in enumerate(zip(chunks, slots)):
        event_id: Optional[str] = None
        try:
            event_id = gateway.create_event(chunk.label(task.title), slot)
        except GatewayApiError as e:
            logger.warning("Failed to create event for chunk %d/%d of %r: %s",
                           chunk.ordinal, total, task.title, e)
        except GatewayAuthError as e:
            logger.warning("Auth failed creating chunk %d/%d of %r, stopping: %s",
                           chunk.ordinal, total, task.title, e)
            placed.extend(
                PlacedSlot(chunk=c, interval=s)
                for c, s in zip(chunks[i:], slots[i:])
            )
            return report.auth_interrupted(placed, total)
        placed.append(PlacedSlot(chunk=chunk, interval=slot, event_id=event_id))

    result = report.summarize(placed, total)
    logger.info(result.message)
    return result
