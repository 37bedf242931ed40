"""
Chunk planning: split a task's total duration into calendar-sized pieces.

Two modes:
- automatic: greedy DEFAULT_CHUNK_MINUTES chunks, the last one takes the remainder
- manual: an explicit count (and optionally a per-chunk duration); the last
  chunk is corrected so the plan always sums to the task's total duration
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional

from focus_scheduler.errors import ConfigurationError

DEFAULT_CHUNK_MINUTES = 60


@dataclass(frozen=True)
class Chunk:
    """
    One bounded piece of a task, scheduled as a single calendar event.

    ordinal is 1-based so it can be shown as "Part 2/3".
    """
    duration_minutes: int
    ordinal: int
    total_chunks: int

    def label(self, title: str) -> str:
        if self.total_chunks == 1:
            return f"[Focus] {title}"
        return f"[Focus] {title} (Part {self.ordinal}/{self.total_chunks})"


def plan_chunks(
    total_minutes: int,
    manual_count: Optional[int] = None,
    manual_per_chunk: Optional[int] = None,
) -> List[int]:
    """
    Return the ordered list of chunk durations (minutes). The sum always
    equals total_minutes.

    Raises:
        ConfigurationError: non-positive total or per-chunk duration, or a
        manual plan whose corrected last chunk would be zero or negative.
    """
    total_minutes = int(total_minutes)
    if total_minutes <= 0:
        raise ConfigurationError(f"Task duration must be positive, got {total_minutes} minutes")

    if manual_count and manual_count > 1:
        if manual_per_chunk is None:
            per_chunk = math.ceil(total_minutes / manual_count)
        else:
            per_chunk = int(manual_per_chunk)
        if per_chunk <= 0:
            raise ConfigurationError(f"Chunk duration must be positive, got {per_chunk} minutes")

        chunks = [per_chunk] * int(manual_count)
        chunks[-1] += total_minutes - sum(chunks)

        if chunks[-1] <= 0:
            raise ConfigurationError(
                f"{manual_count} chunks of {per_chunk} minutes exceed the task duration "
                f"of {total_minutes} minutes"
            )
        return chunks

    chunks = []
    remaining = total_minutes
    while remaining > 0:
        size = min(DEFAULT_CHUNK_MINUTES, remaining)
        chunks.append(size)
        remaining -= size
    return chunks


def build_chunks(durations: List[int]) -> List[Chunk]:
    total = len(durations)
    return [Chunk(duration_minutes=d, ordinal=i, total_chunks=total) for i, d in enumerate(durations, start=1)]
