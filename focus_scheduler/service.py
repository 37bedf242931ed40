"""
Server-side entry points: schedule (and unschedule) a task on Google Calendar.

This is the "caller" around the core:
1) resolve working hours, timezone and the due date
2) validate the task and its chunk plan (no network on failure)
3) read busy time and run the scheduler through a token-refreshing gateway
4) turn auth/provider failures into a ScheduleResult the UI can show
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, List, Mapping, Optional

from focus_scheduler import scheduler
from focus_scheduler.config import Settings, load_settings
from focus_scheduler.errors import ConfigurationError, GatewayApiError, GatewayAuthError
from focus_scheduler.gateway import CalendarGateway, GoogleCalendarGateway, RefreshingGateway
from focus_scheduler.google_auth import CredentialProvider, get_calendar_service
from focus_scheduler.planning import report
from focus_scheduler.planning.chunks import DEFAULT_CHUNK_MINUTES
from focus_scheduler.planning.report import ScheduleResult
from focus_scheduler.planning.tasks import Task, resolve_due_date
from focus_scheduler.planning.working_hours import WorkingHours

logger = logging.getLogger(__name__)

GatewayFactory = Callable[[CredentialProvider, WorkingHours, Settings], CalendarGateway]

AUTH_FAILED_MESSAGE = report.AUTH_FAILED_MESSAGE


def google_gateway(credentials: CredentialProvider, work_hours: WorkingHours, settings: Settings) -> CalendarGateway:
    service = get_calendar_service(credentials.credentials())
    return GoogleCalendarGateway(service, work_hours, calendar_ids=settings.planning_calendar_ids)


def build_task(task_data: Mapping[str, Any], work_hours: WorkingHours, now: datetime) -> Task:
    """
    Build a Task from request data.

    Keys: id, title, duration (minutes, default 60), due_date,
    chunk_count, chunk_duration.
    """
    if not task_data.get("id"):
        raise ConfigurationError("Missing task id")

    return Task(
        id=str(task_data["id"]),
        title=str(task_data.get("title") or ""),
        total_duration_minutes=int(task_data.get("duration") or DEFAULT_CHUNK_MINUTES),
        due_date=resolve_due_date(task_data.get("due_date"), work_hours.timezone, now, end_of_day=work_hours.end),
        manual_chunk_count=task_data.get("chunk_count"),
        manual_chunk_duration_minutes=task_data.get("chunk_duration"),
    )


def schedule_task(
    task_data: Mapping[str, Any],
    access_token: str,
    refresh_token: Optional[str] = None,
    working_hours_start: Optional[str] = None,
    working_hours_end: Optional[str] = None,
    timezone_name: Optional[str] = None,
    settings: Optional[Settings] = None,
    gateway_factory: GatewayFactory = google_gateway,
    now: Optional[datetime] = None,
) -> ScheduleResult:
    """
    Schedule one task onto the user's calendar and report what happened.

    Never raises for bad input or calendar failures; those become an
    unsuccessful ScheduleResult. GatewayValidationError (an event outside
    working hours) is a bug and propagates.
    """
    settings = settings or load_settings()
    now = now or datetime.now(timezone.utc)

    try:
        work_hours = WorkingHours(
            start=working_hours_start or settings.working_hours_start,
            end=working_hours_end or settings.working_hours_end,
            timezone=timezone_name or settings.default_timezone,
        )
        task = build_task(task_data, work_hours, now)
        scheduler.validate_plan(task, work_hours, now)
    except ConfigurationError as e:
        logger.warning("Rejected task %r: %s", task_data.get("id"), e)
        return report.failure(str(e))

    credentials = CredentialProvider.from_settings(settings, access_token, refresh_token)
    gateway = RefreshingGateway(lambda: gateway_factory(credentials, work_hours, settings), credentials)

    try:
        busy = gateway.list_busy(now, task.due_date)
        return scheduler.schedule(task, now, busy, work_hours, gateway, now=now)
    except GatewayAuthError as e:
        logger.warning("Scheduling %r failed on auth: %s", task.id, e)
        return report.failure(AUTH_FAILED_MESSAGE)
    except GatewayApiError as e:
        logger.error("Could not read busy times for %r: %s", task.id, e)
        return report.failure(f"Could not read your calendar: {e}")


def unschedule_task(
    event_ids: Iterable[str],
    access_token: str,
    refresh_token: Optional[str] = None,
    settings: Optional[Settings] = None,
    gateway_factory: GatewayFactory = google_gateway,
) -> List[str]:
    """
    Delete events created for a task (task removed or marked done).

    Returns the ids that are gone from the calendar. Provider errors on one
    event are logged and skipped; auth errors propagate after one refresh.
    """
    settings = settings or load_settings()
    work_hours = WorkingHours(
        start=settings.working_hours_start,
        end=settings.working_hours_end,
        timezone=settings.default_timezone,
    )
    credentials = CredentialProvider.from_settings(settings, access_token, refresh_token)
    gateway = RefreshingGateway(lambda: gateway_factory(credentials, work_hours, settings), credentials)

    deleted: List[str] = []
    for event_id in event_ids:
        try:
            gateway.delete_event(event_id)
        except GatewayApiError as e:
            logger.warning("Failed to delete event %s: %s", event_id, e)
            continue
        deleted.append(event_id)
    return deleted
