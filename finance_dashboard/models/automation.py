"""
Automation Models

Automations are rule-based jobs (e.g. "email me the expense summary on the
1st of every month"). Only the trigger schedule is modelled here; delivery
of emails and notifications happens elsewhere.
"""

import re
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

DEFAULT_QUARTERLY_MONTHS = [1, 4, 7, 10]


class ScheduleFrequency(str, Enum):
    """How often a scheduled automation fires."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class DurationType(str, Enum):
    """How long a scheduled automation keeps running."""
    FOREVER = "forever"
    COUNT = "count"    # stop after run_count runs
    UNTIL = "until"    # stop at run_until


class TriggerConfig(BaseModel):
    """
    Schedule trigger configuration.

    `time` is wall-clock time in `timezone`. Days of month are limited to
    1-28 so every month has the day.
    """

    frequency: ScheduleFrequency
    time: str = Field(
        ...,
        description="Local time of day, HH:MM"
    )
    timezone: str = Field(
        default="UTC",
        description="IANA timezone name"
    )

    # weekly: 0-6, Sunday first
    day_of_week: int = Field(default=0, ge=0, le=6)
    # monthly / quarterly / yearly
    day_of_month: int = Field(default=1, ge=1, le=28)
    # quarterly
    months: list[int] = Field(default_factory=lambda: list(DEFAULT_QUARTERLY_MONTHS))
    # yearly
    month: int = Field(default=1, ge=1, le=12)

    duration_type: DurationType = DurationType.FOREVER
    run_count: Optional[int] = Field(default=None, ge=1)
    run_until: Optional[datetime] = None
    runs_completed: int = Field(default=0, ge=0)

    @field_validator('time')
    @classmethod
    def validate_time(cls, v: str) -> str:
        if not TIME_PATTERN.match(v):
            raise ValueError(f"Invalid time '{v}', expected HH:MM")
        return v

    @field_validator('months')
    @classmethod
    def validate_months(cls, v: list[int]) -> list[int]:
        for m in v:
            if not 1 <= m <= 12:
                raise ValueError(f"Invalid month {m} in quarterly months")
        return v

    @model_validator(mode='after')
    def validate_duration(self) -> 'TriggerConfig':
        """Each duration type needs its limit."""
        if self.duration_type == DurationType.COUNT and self.run_count is None:
            raise ValueError("run_count is required when duration_type is 'count'")
        if self.duration_type == DurationType.UNTIL and self.run_until is None:
            raise ValueError("run_until is required when duration_type is 'until'")
        return self

    @property
    def hour(self) -> int:
        return int(self.time.split(":")[0])

    @property
    def minute(self) -> int:
        return int(self.time.split(":")[1])


class ScheduleUpdate(BaseModel):
    """What to write back to an automation after it has run."""

    last_run_at: datetime
    next_run_at: Optional[datetime]
    is_active: bool
    trigger_config: TriggerConfig
