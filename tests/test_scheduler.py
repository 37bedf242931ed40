"""
Scheduling orchestrator: placement, gaps, day rollover and partial failures.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from itertools import combinations
from zoneinfo import ZoneInfo

import pytest

from focus_scheduler.errors import (
    ConfigurationError,
    GatewayAuthError,
    GatewayValidationError,
    InsufficientTimeError,
)
from focus_scheduler.planner import Interval, overlaps
from focus_scheduler.planning.tasks import Task
from focus_scheduler.planning.working_hours import WorkingHours
from focus_scheduler.planning.chunks import build_chunks
from focus_scheduler.scheduler import place_chunks, schedule, validate_plan

TZ = ZoneInfo("America/Toronto")
WH = WorkingHours(start="09:00", end="18:00", timezone="America/Toronto")


def at(hour, minute=0, day=15):
    return datetime(2025, 12, day, hour, minute, tzinfo=TZ)


def iv(h1, m1, h2, m2, day=15):
    return Interval(start=at(h1, m1, day), end=at(h2, m2, day))


NOW = at(8, 0)


def make_task(minutes, due=None, **manual):
    return Task(
        id="t1",
        title="Write report",
        total_duration_minutes=minutes,
        due_date=due or NOW + timedelta(days=3),
        **manual,
    )


def test_ninety_minutes_on_a_free_day(make_gateway):
    """
    90 minutes, free calendar -> [60, 30] with a one-hour break between them.
    """
    gw = make_gateway()
    result = schedule(make_task(90), NOW, [], WH, gw, now=NOW)

    assert result.success
    assert result.chunks_placed == 2
    assert result.total_chunks == 2
    assert result.created_event_ids == ["evt-1", "evt-2"]
    assert [c[2] for c in gw.created] == [iv(9, 0, 10, 0), iv(11, 0, 11, 30)]
    assert [c[1] for c in gw.created] == [
        "[Focus] Write report (Part 1/2)",
        "[Focus] Write report (Part 2/2)",
    ]
    assert result.message == "Fully scheduled 2/2 event(s) in your calendar."


def test_single_chunk_label_has_no_part_suffix(make_gateway):
    gw = make_gateway()
    result = schedule(make_task(45), NOW, [], WH, gw, now=NOW)
    assert result.success
    assert gw.created[0][1] == "[Focus] Write report"


def test_busy_day_rolls_chunk_to_next_day(make_gateway):
    gw = make_gateway()
    busy = [iv(9, 0, 17, 30)]
    result = schedule(make_task(60, due=at(18, 0, day=16)), NOW, busy, WH, gw, now=NOW)

    assert result.success
    assert gw.created[0][2] == iv(9, 0, 10, 0, day=16)


def test_busy_day_with_same_day_due_date_is_insufficient_time(make_gateway):
    gw = make_gateway()
    busy = [iv(9, 0, 17, 30)]
    result = schedule(make_task(60, due=at(18, 0)), NOW, busy, WH, gw, now=NOW)

    assert not result.success
    assert result.chunks_placed == 0
    assert result.message.startswith("Not enough time available before due date")
    assert "chunk 1/1" in result.message
    assert gw.created == []


def test_insufficient_time_for_a_later_chunk_creates_nothing(make_gateway):
    gw = make_gateway()
    # Room for the first hour only before the due date.
    result = schedule(make_task(120, due=at(11, 30)), NOW, [], WH, gw, now=NOW)

    assert not result.success
    assert "chunk 2/2" in result.message
    assert result.total_chunks == 2
    assert gw.created == []


def test_cursor_rolls_over_when_break_leaves_the_day(make_gateway):
    short_day = WorkingHours(start="09:00", end="12:00", timezone="America/Toronto")
    gw = make_gateway()
    result = schedule(make_task(180), NOW, [], short_day, gw, now=NOW)

    assert result.success
    assert [c[2] for c in gw.created] == [
        iv(9, 0, 10, 0),
        iv(11, 0, 12, 0),
        iv(9, 0, 10, 0, day=16),
    ]


def test_partial_failure_is_still_success(make_gateway):
    """
    createEvent fails for chunk 2 of 3: two events exist and the message says so.
    """
    gw = make_gateway(fail_on={2})
    result = schedule(make_task(180), NOW, [], WH, gw, now=NOW)

    assert result.success
    assert result.chunks_placed == 2
    assert result.total_chunks == 3
    assert result.created_event_ids == ["evt-1", "evt-3"]
    assert result.failed_parts == [2]
    assert result.message.startswith("Partially scheduled 2/3")
    assert "Part 2" in result.message


def test_failed_chunk_keeps_its_slot_reserved(make_gateway):
    gw = make_gateway(fail_on={1})
    result = schedule(make_task(120), NOW, [], WH, gw, now=NOW)

    placed = {p.chunk.ordinal: p for p in result.placed}
    assert placed[1].event_id is None
    assert placed[1].interval == iv(9, 0, 10, 0)
    assert placed[2].interval == iv(11, 0, 12, 0)


def test_all_creations_failing_is_failure(make_gateway):
    gw = make_gateway(fail_on={1, 2})
    result = schedule(make_task(90), NOW, [], WH, gw, now=NOW)

    assert not result.success
    assert result.chunks_placed == 0
    assert result.message.startswith("Failed to create any calendar events")


def test_placed_chunks_never_overlap_and_stay_in_bounds(make_gateway):
    busy = [
        iv(9, 30, 10, 15),
        iv(12, 0, 13, 0),
        iv(15, 45, 17, 0),
        iv(9, 0, 11, 0, day=16),
        iv(14, 0, 18, 0, day=16),
    ]
    due = at(18, 0, day=18)
    task = make_task(420, due=due, manual_chunk_count=6, manual_chunk_duration_minutes=75)
    gw = make_gateway()
    result = schedule(task, NOW, busy, WH, gw, now=NOW)

    assert result.success
    slots = [p.interval for p in result.placed]
    assert len(slots) == 6
    for a, b in combinations(slots, 2):
        assert not overlaps(a, b)
    for s in slots:
        assert not any(overlaps(s, b) for b in busy)
        assert WH.contains(s)
        assert s.end <= due
    assert slots == sorted(slots, key=lambda s: s.start)


def test_invalid_task_is_rejected_before_gateway_calls(make_gateway):
    gw = make_gateway()
    with pytest.raises(ConfigurationError):
        schedule(make_task(60, manual_chunk_count=3, manual_chunk_duration_minutes=30), NOW, [], WH, gw, now=NOW)
    with pytest.raises(ConfigurationError):
        schedule(make_task(60, due=NOW - timedelta(hours=1)), NOW, [], WH, gw, now=NOW)
    assert gw.create_calls == 0


def test_gateway_validation_error_propagates(make_gateway):
    class StrictGateway(make_gateway):
        def create_event(self, label, interval):
            raise GatewayValidationError("outside working hours")

    with pytest.raises(GatewayValidationError):
        schedule(make_task(60), NOW, [], WH, StrictGateway(), now=NOW)


def test_auth_failure_mid_run_keeps_created_ids(make_gateway):
    """
    The credential dies after the first event: creation stops, the run fails,
    and evt-1 is still reported so it can be unscheduled.
    """
    class ExpiringGateway(make_gateway):
        def create_event(self, label, interval):
            if self.create_calls >= 1:
                raise GatewayAuthError("token revoked")
            return super().create_event(label, interval)

    gw = ExpiringGateway()
    result = schedule(make_task(180), NOW, [], WH, gw, now=NOW)

    assert not result.success
    assert result.created_event_ids == ["evt-1"]
    assert result.chunks_placed == 1
    assert result.total_chunks == 3
    assert result.failed_parts == [2, 3]
    assert [p.event_id for p in result.placed] == ["evt-1", None, None]
    assert result.message.startswith("Google Calendar authorization failed")
    assert "1/3 event(s) were created" in result.message


def test_auth_failure_on_first_event_creates_nothing(make_gateway):
    class ExpiredGateway(make_gateway):
        def create_event(self, label, interval):
            raise GatewayAuthError("token revoked")

    result = schedule(make_task(90), NOW, [], WH, ExpiredGateway(), now=NOW)

    assert not result.success
    assert result.created_event_ids == []
    assert result.failed_parts == [1, 2]


def test_place_chunks_raises_for_the_chunk_without_room():
    chunks = build_chunks([60, 60])
    with pytest.raises(InsufficientTimeError) as excinfo:
        place_chunks(chunks, NOW, at(11, 30), [], WH, now=NOW)

    assert excinfo.value.ordinal == 2
    assert excinfo.value.total == 2


def test_place_chunks_is_pure():
    busy = [iv(9, 0, 10, 0)]
    slots = place_chunks(build_chunks([60, 30]), NOW, at(18, 0), busy, WH, now=NOW)

    assert slots == [iv(10, 0, 11, 0), iv(12, 0, 12, 30)]
    assert busy == [iv(9, 0, 10, 0)]


def test_chunk_longer_than_the_working_day_is_a_configuration_error(make_gateway):
    task = make_task(1200, manual_chunk_count=2, manual_chunk_duration_minutes=600)
    with pytest.raises(ConfigurationError):
        validate_plan(task, WH, NOW)

    gw = make_gateway()
    with pytest.raises(ConfigurationError):
        schedule(task, NOW, [], WH, gw, now=NOW)
    assert gw.create_calls == 0


def test_chunk_filling_the_whole_working_day_is_allowed():
    short_day = WorkingHours(start="09:00", end="12:00", timezone="America/Toronto")
    task = make_task(360, manual_chunk_count=2, manual_chunk_duration_minutes=180)
    assert validate_plan(task, short_day, NOW) == [180, 180]
