"""
Scheduling results: aggregate per-chunk outcomes into one user-facing summary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from focus_scheduler.planner import Interval, to_rfc3339
from focus_scheduler.planning.chunks import Chunk


@dataclass(frozen=True)
class PlacedSlot:
    """
    A chunk and the interval reserved for it.

    event_id is None when the calendar rejected the event; the interval stays
    reserved for the rest of the run either way.
    """
    chunk: Chunk
    interval: Interval
    event_id: Optional[str] = None


@dataclass(frozen=True)
class ScheduleResult:
    success: bool
    chunks_placed: int
    total_chunks: int
    created_event_ids: List[str]
    message: str
    placed: List[PlacedSlot] = field(default_factory=list)
    failed_parts: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "chunks_placed": self.chunks_placed,
            "total_chunks": self.total_chunks,
            "created_event_ids": list(self.created_event_ids),
            "failed_parts": list(self.failed_parts),
            "message": self.message,
            "slots": [
                {
                    "part": p.chunk.ordinal,
                    "start": to_rfc3339(p.interval.start),
                    "end": to_rfc3339(p.interval.end),
                    "minutes": p.interval.minutes(),
                    "event_id": p.event_id,
                }
                for p in self.placed
            ],
        }


AUTH_FAILED_MESSAGE = (
    "Google Calendar authorization failed. Please reconnect Google Calendar in Settings."
)


def failure(message: str, total_chunks: int = 0) -> ScheduleResult:
    return ScheduleResult(
        success=False,
        chunks_placed=0,
        total_chunks=total_chunks,
        created_event_ids=[],
        message=message,
    )


def insufficient_time(due_date: datetime, ordinal: int, total: int, tz) -> ScheduleResult:
    """
    Result for a run that stopped because chunk `ordinal` had no slot.
    """
    due_local = due_date.astimezone(tz).strftime("%Y-%m-%d %H:%M")
    return failure(
        f"Not enough time available before due date ({due_local}) for chunk "
        f"{ordinal}/{total}. Please adjust date or duration.",
        total_chunks=total,
    )


def auth_interrupted(placed: List[PlacedSlot], total_chunks: int) -> ScheduleResult:
    """
    Result for a run whose credential died while events were being created.

    Always a failure, but the ids of events that already exist are kept so
    the caller can still remove them.
    """
    created = [p.event_id for p in placed if p.event_id]
    failed = [p.chunk.ordinal for p in placed if not p.event_id]
    message = AUTH_FAILED_MESSAGE
    if created:
        message = (
            f"{AUTH_FAILED_MESSAGE} {len(created)}/{total_chunks} event(s) were created "
            f"before the failure."
        )
    return ScheduleResult(
        success=False,
        chunks_placed=len(created),
        total_chunks=total_chunks,
        created_event_ids=created,
        message=message,
        placed=list(placed),
        failed_parts=failed,
    )


def summarize(placed: List[PlacedSlot], total_chunks: int) -> ScheduleResult:
    """
    Fold per-chunk creation outcomes into one result.

    - every event created -> "Fully scheduled N/N"
    - some created        -> success, "Partially scheduled M/N" naming the failed parts
    - none created        -> failure
    """
    created = [p.event_id for p in placed if p.event_id]
    failed = [p.chunk.ordinal for p in placed if not p.event_id]

    if not created:
        return ScheduleResult(
            success=False,
            chunks_placed=0,
            total_chunks=total_chunks,
            created_event_ids=[],
            message="Failed to create any calendar events. Please check your connection and try again.",
            placed=list(placed),
            failed_parts=failed,
        )

    if failed:
        parts = ", ".join(str(n) for n in failed)
        message = (
            f"Partially scheduled {len(created)}/{total_chunks} event(s) - some events could not "
            f"be created (Part {parts})."
        )
    else:
        message = f"Fully scheduled {len(created)}/{total_chunks} event(s) in your calendar."

    return ScheduleResult(
        success=True,
        chunks_placed=len(created),
        total_chunks=total_chunks,
        created_event_ids=created,
        message=message,
        placed=list(placed),
        failed_parts=failed,
    )
