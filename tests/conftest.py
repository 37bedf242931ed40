"""
Shared test doubles.

FakeGateway stands in for Google Calendar: it serves a fixed busy list and
records every event it is asked to create or delete.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Tuple

import pytest

from focus_scheduler.errors import GatewayApiError, GatewayAuthError
from focus_scheduler.gateway import CalendarGateway
from focus_scheduler.planner import Interval


class FakeGateway(CalendarGateway):
    def __init__(self, busy: Optional[List[Interval]] = None, fail_on=(), auth_failures: int = 0):
        self.busy = list(busy or [])
        self.fail_on = set(fail_on)          # 1-based create_event call numbers that fail
        self.auth_failures = auth_failures   # number of list_busy calls that raise GatewayAuthError
        self.create_calls = 0
        self.created: List[Tuple[str, str, Interval]] = []
        self.deleted: List[str] = []
        self.busy_ranges: List[Tuple[datetime, datetime]] = []

    def list_busy(self, range_start: datetime, range_end: datetime) -> List[Interval]:
        if self.auth_failures:
            self.auth_failures -= 1
            raise GatewayAuthError("token expired")
        self.busy_ranges.append((range_start, range_end))
        return list(self.busy)

    def create_event(self, label: str, interval: Interval) -> str:
        self.create_calls += 1
        if self.create_calls in self.fail_on:
            raise GatewayApiError("backend error", status=500)
        event_id = f"evt-{self.create_calls}"
        self.created.append((event_id, label, interval))
        return event_id

    def delete_event(self, event_id: str) -> None:
        if event_id.startswith("broken"):
            raise GatewayApiError("backend error", status=500)
        self.deleted.append(event_id)


@pytest.fixture
def make_gateway():
    return FakeGateway
