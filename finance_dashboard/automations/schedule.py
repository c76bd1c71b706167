"""
Automation Schedule Calculation

Works out when a scheduled automation should fire next, and whether it has
used up its run budget.

DESIGN DECISION: All arithmetic happens in the automation's own timezone,
then the result is converted to UTC. "Every month on the 1st at 09:00
Europe/Berlin" stays at 09:00 local time across DST changes.

A slot at the current minute counts as already passed, so an automation
that has just run is never scheduled for the same minute again.
"""

import calendar
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog

from finance_dashboard.models.automation import (
    DEFAULT_QUARTERLY_MONTHS,
    DurationType,
    ScheduleFrequency,
    ScheduleUpdate,
    TriggerConfig,
)


logger = structlog.get_logger(__name__)


class ScheduleError(Exception):
    """Raised when a schedule cannot be computed."""
    pass


def resolve_timezone(name: str) -> tzinfo:
    """Look up an IANA timezone, falling back to UTC if it does not exist."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("invalid_timezone", timezone=name, fallback="UTC")
        return timezone.utc


def _require_aware(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        raise ScheduleError("Schedule calculations need a timezone-aware 'now'")
    return moment


def _as_utc(moment: datetime) -> datetime:
    # stored limits without an offset are UTC
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def _days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def _next_month(year: int, month: int) -> tuple[int, int]:
    if month == 12:
        return year + 1, 1
    return year, month + 1


def calculate_next_run(config: TriggerConfig, now: datetime) -> datetime:
    """
    Next time a scheduled automation should run, in UTC.

    Args:
        config: The automation's trigger configuration
        now: Current time (timezone-aware)

    Returns:
        Timezone-aware UTC datetime of the next run

    Raises:
        ScheduleError: If `now` is naive
    """
    _require_aware(now)
    tz = resolve_timezone(config.timezone)
    local = now.astimezone(tz)
    today = local.date()

    time_passed = (local.hour, local.minute) >= (config.hour, config.minute)

    if config.frequency == ScheduleFrequency.DAILY:
        target = today + timedelta(days=1) if time_passed else today

    elif config.frequency == ScheduleFrequency.WEEKLY:
        # Python weeks start on Monday; ours start on Sunday
        current_dow = (local.weekday() + 1) % 7
        days_until = config.day_of_week - current_dow
        if days_until < 0 or (days_until == 0 and time_passed):
            days_until += 7
        target = today + timedelta(days=days_until)

    elif config.frequency == ScheduleFrequency.MONTHLY:
        year, month = today.year, today.month
        if today.day > config.day_of_month or (
            today.day == config.day_of_month and time_passed
        ):
            year, month = _next_month(year, month)
        target = date(year, month, min(config.day_of_month, _days_in_month(year, month)))

    elif config.frequency == ScheduleFrequency.QUARTERLY:
        months = sorted(config.months or DEFAULT_QUARTERLY_MONTHS)
        year, month = today.year, None
        for candidate in months:
            if candidate > today.month:
                month = candidate
                break
            if candidate == today.month:
                day = min(config.day_of_month, _days_in_month(year, candidate))
                if today.day < day or (today.day == day and not time_passed):
                    month = candidate
                    break
        if month is None:
            year, month = year + 1, months[0]
        target = date(year, month, min(config.day_of_month, _days_in_month(year, month)))

    elif config.frequency == ScheduleFrequency.YEARLY:
        year = today.year
        if (
            today.month > config.month
            or (today.month == config.month and today.day > config.day_of_month)
            or (
                today.month == config.month
                and today.day == config.day_of_month
                and time_passed
            )
        ):
            year += 1
        target = date(
            year,
            config.month,
            min(config.day_of_month, _days_in_month(year, config.month)),
        )

    else:
        raise ScheduleError(f"Unsupported schedule frequency: {config.frequency}")

    local_run = datetime(
        target.year, target.month, target.day,
        config.hour, config.minute,
        tzinfo=tz,
    )
    return local_run.astimezone(timezone.utc)


def has_exceeded_duration(config: TriggerConfig, now: datetime) -> bool:
    """True if the automation has used up its run count or passed its end date."""
    _require_aware(now)
    if config.duration_type == DurationType.COUNT and config.run_count:
        return config.runs_completed >= config.run_count
    if config.duration_type == DurationType.UNTIL and config.run_until:
        return now >= _as_utc(config.run_until)
    return False


def advance_after_run(config: TriggerConfig, now: datetime) -> ScheduleUpdate:
    """
    Work out the automation's new state after a completed run.

    Increments `runs_completed`. When the run budget is used up, the
    automation is deactivated and has no next run.
    """
    _require_aware(now)
    runs_completed = config.runs_completed + 1
    updated = config.model_copy(update={"runs_completed": runs_completed})

    should_deactivate = False
    if config.duration_type == DurationType.COUNT and config.run_count:
        should_deactivate = runs_completed >= config.run_count
    elif config.duration_type == DurationType.UNTIL and config.run_until:
        should_deactivate = now >= _as_utc(config.run_until)

    next_run_at: Optional[datetime] = None
    if not should_deactivate:
        next_run_at = calculate_next_run(config, now)

    logger.info(
        "automation_advanced",
        runs_completed=runs_completed,
        deactivated=should_deactivate,
        next_run_at=next_run_at.isoformat() if next_run_at else None,
    )

    return ScheduleUpdate(
        last_run_at=now,
        next_run_at=next_run_at,
        is_active=not should_deactivate,
        trigger_config=updated,
    )
