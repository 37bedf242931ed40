"""
Error taxonomy for the scheduler.

- ConfigurationError: bad inputs, rejected before any calendar call is made.
- InsufficientTimeError: no slot exists for some chunk before the due date.
- Gateway*Error: failures reported by the calendar provider boundary.
"""

from __future__ import annotations

from typing import Optional


class SchedulingError(Exception):
    """Base class for every error raised by focus_scheduler."""


class ConfigurationError(SchedulingError):
    """Invalid task, chunk plan or working-hours configuration."""


class InsufficientTimeError(SchedulingError):
    """
    No free slot could be found for a chunk before the due date.

    ordinal/total identify the chunk that could not be placed (1-based).
    """

    def __init__(self, message: str, ordinal: int, total: int):
        super().__init__(message)
        self.ordinal = ordinal
        self.total = total


class GatewayError(SchedulingError):
    """Base class for calendar provider failures."""


class GatewayAuthError(GatewayError):
    """The credential is invalid or expired (refresh-and-retry is the caller's job)."""


class GatewayApiError(GatewayError):
    """Transport or provider failure. Soft when creating a single event."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class GatewayValidationError(GatewayError):
    """The gateway was asked to write an event outside working hours."""
