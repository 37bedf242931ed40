"""
Calendar gateway: the scheduler's only window onto the calendar provider.

- CalendarGateway: the interface the orchestrator depends on
- GoogleCalendarGateway: Google Calendar v3 implementation (FreeBusy + events)
- RefreshingGateway: caller-side wrapper that refreshes the access token once
  on an auth failure and retries the same call

Google library errors are translated here:
- HTTP 401 / RefreshError -> GatewayAuthError
- any other HttpError     -> GatewayApiError
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Iterable, List

from google.auth.exceptions import RefreshError
from googleapiclient.errors import HttpError

from focus_scheduler import gcal_tools
from focus_scheduler.errors import (
    GatewayApiError,
    GatewayAuthError,
    GatewayValidationError,
)
from focus_scheduler.google_auth import CredentialProvider
from focus_scheduler.planner import Interval, merge_busy_from_freebusy, to_rfc3339
from focus_scheduler.planning.working_hours import WorkingHours

logger = logging.getLogger(__name__)


class CalendarGateway(ABC):
    """
    Abstract calendar backend used by the scheduler.
    """

    @abstractmethod
    def list_busy(self, range_start: datetime, range_end: datetime) -> List[Interval]:
        """Return busy intervals overlapping [range_start, range_end)."""

    @abstractmethod
    def create_event(self, label: str, interval: Interval) -> str:
        """Create an event and return its id."""

    @abstractmethod
    def delete_event(self, event_id: str) -> None:
        """Delete an event previously returned by create_event."""


def _status_of(e: HttpError) -> int:
    return int(getattr(e.resp, "status", 0) or 0)


def _translate(e: Exception, action: str) -> Exception:
    if isinstance(e, RefreshError):
        return GatewayAuthError(f"Google Calendar authorization failed while trying to {action}: {e}")
    status = _status_of(e)
    if status == 401:
        return GatewayAuthError(f"Google Calendar rejected the access token (401) while trying to {action}")
    return GatewayApiError(f"Google Calendar API error ({status}) while trying to {action}: {e}", status=status)


class GoogleCalendarGateway(CalendarGateway):
    """
    Google Calendar implementation.

    Busy time is read from every calendar in `calendar_ids`; events are written
    to the primary calendar only.
    """

    def __init__(self, service, work_hours: WorkingHours, calendar_ids: Iterable[str] = ("primary",)):
        self.service = service
        self.work_hours = work_hours
        self.calendar_ids = list(calendar_ids)

    def list_busy(self, range_start: datetime, range_end: datetime) -> List[Interval]:
        try:
            calendars_busy = gcal_tools.freebusy_query(
                service=self.service,
                time_min=to_rfc3339(range_start),
                time_max=to_rfc3339(range_end),
                calendar_ids=self.calendar_ids,
            )
        except (HttpError, RefreshError) as e:
            raise _translate(e, "read busy times") from e

        for cid, data in calendars_busy.items():
            for err in data.get("errors", []):
                logger.warning("FreeBusy error for calendar %s: %s", cid, err.get("reason"))

        busy = merge_busy_from_freebusy(calendars_busy)
        logger.info("Fetched %d busy interval(s) from %d calendar(s)", len(busy), len(self.calendar_ids))
        return busy

    def create_event(self, label: str, interval: Interval) -> str:
        if not self.work_hours.contains(interval):
            raise GatewayValidationError(
                f"Refusing to create {label!r} at {to_rfc3339(interval.start)}-{to_rfc3339(interval.end)}: "
                f"outside working hours {self.work_hours.start}-{self.work_hours.end} ({self.work_hours.timezone})"
            )

        payload = gcal_tools.build_event_payload(
            summary=label,
            start_rfc3339=to_rfc3339(interval.start),
            end_rfc3339=to_rfc3339(interval.end),
            tz_name=self.work_hours.timezone,
        )
        try:
            result = gcal_tools.create_event_primary(self.service, payload, confirm=True)
        except (HttpError, RefreshError) as e:
            raise _translate(e, "create an event") from e

        event_id = result.get("event", {}).get("id")
        if not event_id:
            raise GatewayApiError("Google Calendar did not return an event id")
        logger.info("Created event %s (%s)", event_id, label)
        return event_id

    def delete_event(self, event_id: str) -> None:
        try:
            gcal_tools.delete_event_primary(self.service, event_id)
        except HttpError as e:
            if _status_of(e) in (404, 410):
                logger.info("Event %s already deleted", event_id)
                return
            raise _translate(e, "delete an event") from e
        except RefreshError as e:
            raise _translate(e, "delete an event") from e


class RefreshingGateway(CalendarGateway):
    """
    Retry a gateway call exactly once after refreshing the access token.

    `build` creates the inner gateway from the (possibly refreshed) credentials.
    If there is no refresh token, or the retry fails again, the
    GatewayAuthError reaches the caller.
    """

    def __init__(self, build: Callable[[], CalendarGateway], credentials: CredentialProvider):
        self._build = build
        self._credentials = credentials
        self._inner = build()

    def _call(self, name: str, *args):
        try:
            return getattr(self._inner, name)(*args)
        except GatewayAuthError:
            if not self._credentials.can_refresh:
                raise
            logger.info("Auth error during %s, refreshing token and retrying once", name)
            self._credentials.refresh()
            self._inner = self._build()
            return getattr(self._inner, name)(*args)

    def list_busy(self, range_start: datetime, range_end: datetime) -> List[Interval]:
        return self._call("list_busy", range_start, range_end)

    def create_event(self, label: str, interval: Interval) -> str:
        return self._call("create_event", label, interval)

    def delete_event(self, event_id: str) -> None:
        return self._call("delete_event", event_id)
