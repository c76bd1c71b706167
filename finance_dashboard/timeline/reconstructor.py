"""
Expense Timeline Reconstruction

Rebuilds the total monthly cost of recurring expenses over time by
replaying the expense history log.

DESIGN DECISION: We never store running totals. Every call starts from an
empty state and replays the whole log, so the chart always agrees with the
history table, whatever order the rows arrive in.

Replay rules per event type:
- created / updated: state is replaced with the event's values
- paused / activated: flips the active flag (creates state from the event
  if the expense has not been seen yet)
- deleted: deactivates; state is kept so later months simply stop
  counting it

After each event the total of all active expenses (normalized to a monthly
figure) is written under the event's month. A later event in the same
month overwrites it, so each month holds the state after its last event.
Months without events get no entry; nothing is interpolated.
"""

from datetime import datetime, tzinfo
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Union
from uuid import UUID

import structlog

from finance_dashboard.models.expense import (
    AmountHistoryPoint,
    ExpenseEvent,
    ExpenseEventType,
    ExpenseFrequency,
    ExpenseState,
    MonthlySnapshot,
)


logger = structlog.get_logger(__name__)

DEFAULT_WINDOW_MONTHS = 12

CENT = Decimal("0.01")

MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

# Periods per year for each billing cadence
PERIODS_PER_YEAR = {
    ExpenseFrequency.WEEKLY: Decimal(52),
    ExpenseFrequency.MONTHLY: Decimal(12),
    ExpenseFrequency.QUARTERLY: Decimal(4),
    ExpenseFrequency.ANNUAL: Decimal(1),
}


class TimelineError(Exception):
    """Base exception for timeline reconstruction."""
    pass


class UnknownFrequencyError(TimelineError, ValueError):
    """A billing frequency outside weekly/monthly/quarterly/annual."""
    pass


# =============================================================================
# NORMALIZATION
# =============================================================================

def _coerce_frequency(frequency: Union[ExpenseFrequency, str]) -> ExpenseFrequency:
    try:
        return ExpenseFrequency(frequency)
    except ValueError:
        raise UnknownFrequencyError(f"Unknown expense frequency: {frequency!r}")


def to_monthly_amount(
    amount: Decimal,
    frequency: Union[ExpenseFrequency, str],
) -> Decimal:
    """
    Convert an amount in its billing frequency to the monthly equivalent.

    weekly → amount * 52 / 12, monthly → amount, quarterly → amount / 3,
    annual → amount / 12. The result is not rounded.

    Raises:
        UnknownFrequencyError: If frequency is not one of the four cadences.
    """
    frequency = _coerce_frequency(frequency)
    amount = Decimal(amount)
    if frequency == ExpenseFrequency.MONTHLY:
        return amount
    if frequency == ExpenseFrequency.WEEKLY:
        return amount * 52 / 12
    if frequency == ExpenseFrequency.QUARTERLY:
        return amount / 3
    return amount / 12


def to_annual_amount(
    amount: Decimal,
    frequency: Union[ExpenseFrequency, str],
) -> Decimal:
    """Convert an amount in its billing frequency to the annual equivalent."""
    frequency = _coerce_frequency(frequency)
    return Decimal(amount) * PERIODS_PER_YEAR[frequency]


def round_cents(value: Decimal) -> Decimal:
    """Round to two decimal places, halves away from zero."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


# =============================================================================
# MONTH KEYS
# =============================================================================

def month_key(moment: datetime, timezone: Optional[tzinfo] = None) -> str:
    """
    Calendar month of a timestamp as YYYY-MM.

    Timezone-aware timestamps are converted to `timezone` first when one is
    given. Naive timestamps are taken as they are.
    """
    if timezone is not None and moment.tzinfo is not None:
        moment = moment.astimezone(timezone)
    return f"{moment.year:04d}-{moment.month:02d}"


def month_label(key: str) -> str:
    """'2025-01' → 'Jan 25'."""
    year, month = key.split("-")
    return f"{MONTH_ABBREVIATIONS[int(month) - 1]} {year[-2:]}"


# =============================================================================
# REPLAY
# =============================================================================

def apply_event(
    states: dict[UUID, ExpenseState],
    event: ExpenseEvent,
) -> None:
    """Apply one history event to the replay state in place."""
    current = states.get(event.expense_id)

    if event.event_type in (ExpenseEventType.CREATED, ExpenseEventType.UPDATED):
        states[event.expense_id] = ExpenseState(
            amount=event.amount,
            frequency=event.frequency,
            is_active=event.is_active,
        )
    elif event.event_type in (ExpenseEventType.PAUSED, ExpenseEventType.ACTIVATED):
        is_active = event.event_type == ExpenseEventType.ACTIVATED
        if current is not None:
            current.is_active = is_active
        else:
            states[event.expense_id] = ExpenseState(
                amount=event.amount,
                frequency=event.frequency,
                is_active=is_active,
            )
    elif event.event_type == ExpenseEventType.DELETED:
        # Deleted expenses keep their state; they just stop counting.
        if current is not None:
            current.is_active = False


def active_monthly_total(states: Iterable[ExpenseState]) -> Decimal:
    """Monthly cost of all active expenses, rounded to cents."""
    total = sum(
        (to_monthly_amount(s.amount, s.frequency) for s in states if s.is_active),
        Decimal("0"),
    )
    return round_cents(total)


class ExpenseTimelineReconstructor:
    """
    Replays expense history into monthly cost snapshots.

    The reconstructor holds configuration only; each call to
    `reconstruct` works on its own state, so one instance can be shared.
    """

    def __init__(
        self,
        window: int = DEFAULT_WINDOW_MONTHS,
        timezone: Optional[tzinfo] = None,
    ):
        """
        Args:
            window: Keep at most this many of the most recent months.
            timezone: Zone used to assign timezone-aware events to months.
        """
        if window < 1:
            raise ValueError(f"window must be at least 1, got {window}")
        self._window = window
        self._timezone = timezone

    @property
    def window(self) -> int:
        return self._window

    def reconstruct(self, events: Iterable[ExpenseEvent]) -> list[MonthlySnapshot]:
        """
        Build the monthly cost series from an unordered event log.

        Returns snapshots sorted by month, oldest first, limited to the
        configured window. An empty log gives an empty list.
        """
        ordered = sorted(events, key=lambda e: e.changed_at)
        if not ordered:
            return []

        states: dict[UUID, ExpenseState] = {}
        totals_by_month: dict[str, Decimal] = {}

        for event in ordered:
            apply_event(states, event)
            key = month_key(event.changed_at, self._timezone)
            totals_by_month[key] = active_monthly_total(states.values())

        months = sorted(totals_by_month)[-self._window:]
        snapshots = [
            MonthlySnapshot(
                month=key,
                label=month_label(key),
                total=totals_by_month[key],
            )
            for key in months
        ]

        logger.debug(
            "timeline_reconstructed",
            event_count=len(ordered),
            expense_count=len(states),
            month_count=len(snapshots),
        )
        return snapshots


def reconstruct(
    events: Iterable[ExpenseEvent],
    window: int = DEFAULT_WINDOW_MONTHS,
    timezone: Optional[tzinfo] = None,
) -> list[MonthlySnapshot]:
    """Shortcut for `ExpenseTimelineReconstructor(window, timezone).reconstruct(events)`."""
    return ExpenseTimelineReconstructor(window=window, timezone=timezone).reconstruct(events)


def amount_history(
    events: Iterable[ExpenseEvent],
    timezone: Optional[tzinfo] = None,
) -> list[AmountHistoryPoint]:
    """
    Amount-over-time points for a single expense's detail chart.

    Only `created` and `updated` events change the amount, so the others
    are left out. Points are ordered oldest first and labelled like
    'Jan 5'.
    """
    relevant = [
        e for e in events
        if e.event_type in (ExpenseEventType.CREATED, ExpenseEventType.UPDATED)
    ]
    relevant.sort(key=lambda e: e.changed_at)

    points = []
    for event in relevant:
        moment = event.changed_at
        if timezone is not None and moment.tzinfo is not None:
            moment = moment.astimezone(timezone)
        points.append(
            AmountHistoryPoint(
                changed_at=event.changed_at,
                label=f"{MONTH_ABBREVIATIONS[moment.month - 1]} {moment.day}",
                amount=event.amount,
                frequency=event.frequency,
            )
        )
    return points
