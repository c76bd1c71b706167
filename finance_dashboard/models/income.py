"""
Income Data Models for the Finance Dashboard

Income is recorded once per month. Each monthly `IncomeEntry` holds one
`IncomeAmount` per source that paid anything that month.

DESIGN DECISION: An entry's total is never stored. It is always the sum of
its amounts, so an edited amount cannot leave a stale total behind.
"""

import re
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


DEFAULT_SOURCE_COLOR = "#5B8A8A"

_MONTH_PATTERN = re.compile(r"^(\d{4})-(\d{2})(?:-\d{2})?$")


# =============================================================================
# STORED ROWS
# =============================================================================

class IncomeSource(BaseModel):
    """
    Somewhere income comes from (an employer, a client, a side project).

    `slug` keys the source's series in the income trend chart.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name"
    )
    slug: str = Field(
        ...,
        pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$",
        description="Lowercase chart key, e.g. 'day-job'"
    )
    color: str = Field(
        default=DEFAULT_SOURCE_COLOR,
        pattern=r"^#[0-9A-Fa-f]{6}$",
    )
    sort_order: int = 0
    is_active: bool = Field(
        default=True,
        description="Inactive sources are left out of breakdowns"
    )

    deleted_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class IncomeEntry(BaseModel):
    """
    One month of income.

    `month` is always stored as the first day of the month. Both
    'YYYY-MM' and 'YYYY-MM-DD' are accepted on input.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    month: date
    notes: Optional[str] = Field(default=None, max_length=1000)

    deleted_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator("month", mode="before")
    @classmethod
    def parse_month(cls, v):
        if isinstance(v, str):
            match = _MONTH_PATTERN.match(v.strip())
            if not match:
                raise ValueError(f"Invalid month: {v!r}. Use YYYY-MM")
            return date(int(match.group(1)), int(match.group(2)), 1)
        return v

    @field_validator("month")
    @classmethod
    def first_of_month(cls, v: date) -> date:
        return v.replace(day=1)

    @property
    def month_key(self) -> str:
        """'YYYY-MM'."""
        return self.month.strftime("%Y-%m")

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class IncomeAmount(BaseModel):
    """What one source paid in one monthly entry."""

    id: UUID = Field(default_factory=uuid4)
    entry_id: UUID
    source_id: UUID
    amount: Decimal = Field(
        default=Decimal("0"),
        description="Can be negative for refunds and chargebacks"
    )
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


# =============================================================================
# DERIVED VIEWS
# =============================================================================

class IncomeStats(BaseModel):
    """Stat cards for the income page."""

    total: Decimal = Decimal("0")
    monthly_average: Decimal = Decimal("0")
    best_month: Optional[date] = Field(
        default=None,
        description="Month with the highest positive total; None if no month is above zero"
    )
    best_month_total: Decimal = Decimal("0")


class SourceBreakdownItem(BaseModel):
    """One slice of the income-by-source chart."""
    model_config = ConfigDict(frozen=True)

    source_id: UUID
    name: str
    color: str
    total: Decimal


class IncomeMonthPoint(BaseModel):
    """One month on the income trend chart."""
    model_config = ConfigDict(frozen=True)

    month: str = Field(..., pattern=r"^\d{4}-\d{2}$")
    label: str
    total: Decimal
    by_source: dict[str, Decimal] = Field(
        default_factory=dict,
        description="Source slug -> amount, zero for sources with no amount"
    )


class IncomeOverview(BaseModel):
    """Everything the income page needs for one year (or all time)."""

    year: Optional[int] = Field(
        default=None,
        description="Selected year; None means all time"
    )
    years: list[int] = Field(
        default_factory=list,
        description="Years that have entries, newest first"
    )
    entries: list[IncomeEntry] = Field(
        default_factory=list,
        description="Entries in the selected year, newest first"
    )
    entry_totals: dict[UUID, Decimal] = Field(default_factory=dict)
    sources: list[IncomeSource] = Field(
        default_factory=list,
        description="Active sources with a non-zero amount in the selected entries"
    )
    stats: IncomeStats = Field(default_factory=IncomeStats)
    breakdown: list[SourceBreakdownItem] = Field(default_factory=list)
    trend: list[IncomeMonthPoint] = Field(default_factory=list)
