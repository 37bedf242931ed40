"""
Runtime configuration, read from environment variables.

GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET   OAuth client (needed to refresh tokens)
DEFAULT_TIMEZONE                          IANA zone used when a request has none
WORKING_HOURS_START / WORKING_HOURS_END   default working window ("HH:MM")
PLANNING_CALENDAR_IDS                     calendars whose busy time is respected
LOG_LEVEL                                 logging level name
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Optional, Tuple


def read_planning_calendar_ids() -> set[str]:
    """
    Read PLANNING_CALENDAR_IDS from env.

    Example:
        "a,b,c" -> {"a","b","c"}

    Empty means "primary only".
    """
    raw = os.getenv("PLANNING_CALENDAR_IDS", "").strip()
    if not raw:
        return set()
    return {x.strip() for x in raw.split(",") if x.strip()}


@dataclass(frozen=True)
class Settings:
    google_client_id: Optional[str] = None
    google_client_secret: Optional[str] = None
    default_timezone: str = "UTC"
    working_hours_start: str = "09:00"
    working_hours_end: str = "18:00"
    planning_calendar_ids: Tuple[str, ...] = field(default=("primary",))
    log_level: str = "INFO"


def load_settings() -> Settings:
    calendar_ids = tuple(sorted(read_planning_calendar_ids())) or ("primary",)
    return Settings(
        google_client_id=os.getenv("GOOGLE_CLIENT_ID") or None,
        google_client_secret=os.getenv("GOOGLE_CLIENT_SECRET") or None,
        default_timezone=os.getenv("DEFAULT_TIMEZONE", "UTC"),
        working_hours_start=os.getenv("WORKING_HOURS_START", "09:00"),
        working_hours_end=os.getenv("WORKING_HOURS_END", "18:00"),
        planning_calendar_ids=calendar_ids,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
