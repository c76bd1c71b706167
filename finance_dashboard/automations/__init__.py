"""Automation scheduling package."""

from finance_dashboard.automations.schedule import (
    ScheduleError,
    advance_after_run,
    calculate_next_run,
    has_exceeded_duration,
    resolve_timezone,
)

__all__ = [
    "ScheduleError",
    "advance_after_run",
    "calculate_next_run",
    "has_exceeded_duration",
    "resolve_timezone",
]
