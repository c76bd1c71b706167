"""
Net Worth Data Models for the Finance Dashboard

Net worth is a series of dated snapshots entered by hand. Changes between
snapshots are derived, never stored.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


class NetWorthEntry(BaseModel):
    """A net worth snapshot on a given date. Amounts may be negative."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    date: date
    amount: Decimal
    notes: Optional[str] = Field(default=None, max_length=1000)

    deleted_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class NetWorthStats(BaseModel):
    """High, low, average and first-to-last change over a set of snapshots."""

    high: Decimal = Decimal("0")
    low: Decimal = Decimal("0")
    average: Decimal = Decimal("0")
    total_change: Decimal = Decimal("0")


class NetWorthChange(BaseModel):
    """Change from the previous snapshot, for the change bar chart."""
    model_config = ConfigDict(frozen=True)

    entry_id: UUID
    date: date
    change: Decimal


class NetWorthPoint(BaseModel):
    """One point on the net worth trend chart."""
    model_config = ConfigDict(frozen=True)

    date: date
    label: str
    amount: Decimal


class NetWorthOverview(BaseModel):
    """
    Everything the net worth page needs for one year (or all time).

    `changes` always compares against the previous snapshot in the full
    series, so January is compared with the prior December even when a
    single year is selected.
    """

    year: Optional[int] = None
    years: list[int] = Field(default_factory=list)
    entries: list[NetWorthEntry] = Field(
        default_factory=list,
        description="Snapshots in the selected year, newest first"
    )
    changes: dict[UUID, Decimal] = Field(
        default_factory=dict,
        description="Entry ID -> change from the previous snapshot (0 for the first)"
    )
    stats: NetWorthStats = Field(default_factory=NetWorthStats)
    change_series: list[NetWorthChange] = Field(default_factory=list)
    trend: list[NetWorthPoint] = Field(default_factory=list)
    current: Optional[NetWorthEntry] = Field(
        default=None,
        description="Latest snapshot overall, regardless of the selected year"
    )
    previous: Optional[NetWorthEntry] = None
    change_percentage: float = 0.0
