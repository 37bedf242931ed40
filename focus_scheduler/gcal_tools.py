"""
Thin wrappers over the Google Calendar v3 client.

These are the only functions that touch the API:
- Read busy blocks across any calendars the user can see (FreeBusy)
- Write focus events ONLY to the primary calendar
- Delete ONLY events this app created (by id, on primary)

They return raw API data and let googleapiclient.errors.HttpError propagate;
translating errors is the gateway's job.
"""

from __future__ import annotations

from typing import Any, Dict, List

PRIMARY = "primary"


def freebusy_query(
    service,
    time_min: str,
    time_max: str,
    calendar_ids: List[str],
) -> Dict[str, Any]:
    """
    Query busy blocks across multiple calendars.

    Args:
        time_min/time_max: RFC3339 timestamps
        calendar_ids: calendar IDs to query

    Returns:
        Dict keyed by calendarId with busy intervals, like:
        { "calendarId": { "busy": [{"start": "...", "end": "..."}, ...] }, ... }
    """
    body = {
        "timeMin": time_min,
        "timeMax": time_max,
        "items": [{"id": cid} for cid in calendar_ids],
    }
    resp = service.freebusy().query(body=body).execute()
    return resp.get("calendars", {})


def build_event_payload(summary: str, start_rfc3339: str, end_rfc3339: str, tz_name: str) -> Dict[str, Any]:
    """
    Google Calendar event body for one focus block.
    """
    return {
        "summary": summary,
        "start": {"dateTime": start_rfc3339, "timeZone": tz_name},
        "end": {"dateTime": end_rfc3339, "timeZone": tz_name},
        "description": "Scheduled by Focus Scheduler.",
    }


def create_event_primary(service, event_payload: Dict[str, Any], confirm: bool) -> Dict[str, Any]:
    """
    Create an event on the PRIMARY calendar only.

    Safety:
    - If confirm is False, returns the draft and does not write.
    """
    if not confirm:
        return {"status": "needs_confirmation", "calendarId": PRIMARY, "draft": event_payload}

    created = service.events().insert(calendarId=PRIMARY, body=event_payload).execute()
    return {"status": "created", "event": created}


def delete_event_primary(service, event_id: str) -> None:
    """
    Delete one event (by id) from the PRIMARY calendar.
    """
    service.events().delete(calendarId=PRIMARY, eventId=event_id).execute()
