"""
Expense Data Models for the Finance Dashboard

These models define the schemas for recurring expenses and their history.
They are designed to:
1. Enforce type safety at runtime
2. Reject malformed history rows before they reach any calculation
3. Be serializable for storage and logging

DESIGN DECISION: Expense history is an append-only event log.
The current `Expense` row is a convenience; the history is the source of
truth for anything that looks back in time (trend charts, month-over-month
comparisons).
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class ExpenseFrequency(str, Enum):
    """
    Billing cadence of a recurring expense.

    DESIGN DECISION: Only these four cadences exist. A row carrying any
    other value is rejected at the model boundary instead of being treated
    as monthly.
    """
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"


class ExpenseEventType(str, Enum):
    """Lifecycle events recorded in expense history."""
    CREATED = "created"
    UPDATED = "updated"
    PAUSED = "paused"
    ACTIVATED = "activated"
    DELETED = "deleted"


class ExpenseType(str, Enum):
    """Whether an expense is personal or business."""
    PERSONAL = "personal"
    BUSINESS = "business"


class ExpenseCategory(str, Enum):
    """Supported expense categories."""
    HOUSING = "housing"
    TRANSPORT = "transport"
    UTILITIES = "utilities"
    HEALTH = "health"
    ENTERTAINMENT = "entertainment"
    SUBSCRIPTIONS = "subscriptions"
    SOFTWARE = "software"
    HOSTING = "hosting"
    MARKETING = "marketing"
    FEES = "fees"
    SERVICES = "services"
    CONTRACTORS = "contractors"
    PAYROLL = "payroll"
    INSURANCE = "insurance"
    OTHER = "other"

    @property
    def label(self) -> str:
        """Display label for the UI."""
        return self.value.capitalize()


# =============================================================================
# CURRENT EXPENSE ROW
# =============================================================================

class Expense(BaseModel):
    """
    A recurring expense as it currently stands.

    `amount` is in the expense's own billing frequency; use
    `monthly_amount` / `annual_amount` for comparable figures.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique expense ID"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Expense name"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Cost per billing period"
    )
    frequency: ExpenseFrequency = Field(
        default=ExpenseFrequency.MONTHLY,
        description="Billing cadence"
    )
    expense_type: ExpenseType = Field(
        ...,
        description="Personal or business"
    )
    category: Optional[ExpenseCategory] = None
    is_active: bool = Field(
        default=True,
        description="Paused expenses do not count towards totals"
    )
    effective_date: date = Field(
        default_factory=date.today,
        description="Date the expense started"
    )
    notes: Optional[str] = Field(
        default=None,
        max_length=1000
    )

    # Soft delete / timestamps
    deleted_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def monthly_amount(self) -> Decimal:
        from finance_dashboard.timeline.reconstructor import to_monthly_amount
        return to_monthly_amount(self.amount, self.frequency)

    @property
    def annual_amount(self) -> Decimal:
        from finance_dashboard.timeline.reconstructor import to_annual_amount
        return to_annual_amount(self.amount, self.frequency)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


# =============================================================================
# EXPENSE HISTORY (EVENT LOG)
# =============================================================================

class ExpenseEvent(BaseModel):
    """
    One entry in the expense history log.

    CRITICAL: History entries are immutable. Corrections are new events,
    never edits of old ones.

    `amount` and `frequency` are the expense's values at the time of the
    event. `is_active` is a snapshot of the active flag and is only
    meaningful for `created` / `updated`.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="History row ID"
    )
    expense_id: UUID = Field(
        ...,
        description="Expense this event concerns"
    )
    event_type: ExpenseEventType
    amount: Decimal = Field(
        ...,
        description="Cost at time of event, in native frequency"
    )
    frequency: ExpenseFrequency
    is_active: bool
    changed_at: datetime = Field(
        ...,
        description="When the change happened"
    )
    notes: Optional[str] = None


class ExpenseState(BaseModel):
    """
    Replayed state of a single expense.

    Transient: built and mutated while replaying history, never stored.
    """

    amount: Decimal
    frequency: ExpenseFrequency
    is_active: bool


class MonthlySnapshot(BaseModel):
    """Total monthly-normalized cost of active expenses at the end of a month."""
    model_config = ConfigDict(frozen=True)

    month: str = Field(
        ...,
        pattern=r"^\d{4}-\d{2}$",
        description="Month key, YYYY-MM"
    )
    label: str = Field(
        ...,
        description="Display label, e.g. 'Jan 25'"
    )
    total: Decimal = Field(
        ...,
        description="Monthly cost, rounded to cents"
    )


class AmountHistoryPoint(BaseModel):
    """A point on a single expense's amount-over-time chart."""
    model_config = ConfigDict(frozen=True)

    changed_at: datetime
    label: str
    amount: Decimal
    frequency: ExpenseFrequency


class ExpenseTotals(BaseModel):
    """Monthly and annual cost of a set of expenses."""

    monthly: Decimal = Decimal("0")
    annual: Decimal = Decimal("0")


class ExpenseSummary(BaseModel):
    """
    Everything the expenses overview needs in one object.

    `previous_month_cost` is the monthly cost as it stood at the start of
    the previous month, reconstructed from history.
    """

    all: ExpenseTotals
    personal: ExpenseTotals
    business: ExpenseTotals
    by_category: dict[ExpenseCategory, Decimal] = Field(default_factory=dict)
    current_month_cost: Decimal
    previous_month_cost: Decimal
    change_percentage: float
