"""
Expense Totals

Aggregations over the current expense rows. All figures are monthly or
annual equivalents so expenses with different billing cadences can be
added up.

Paused and deleted expenses never count towards totals.
"""

from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional
from uuid import UUID

from finance_dashboard.models.expense import (
    Expense,
    ExpenseCategory,
    ExpenseEvent,
    ExpenseState,
    ExpenseTotals,
    ExpenseType,
)
from finance_dashboard.timeline.reconstructor import apply_event, to_monthly_amount


def _counts(expense: Expense) -> bool:
    return expense.is_active and not expense.is_deleted


def calculate_totals(expenses: Iterable[Expense]) -> ExpenseTotals:
    """Monthly and annual cost of the active expenses."""
    monthly = Decimal("0")
    annual = Decimal("0")
    for expense in expenses:
        if not _counts(expense):
            continue
        monthly += expense.monthly_amount
        annual += expense.annual_amount
    return ExpenseTotals(monthly=monthly, annual=annual)


def totals_by_type(expenses: Iterable[Expense]) -> dict[str, ExpenseTotals]:
    """
    Totals for all expenses and for each expense type.

    Returns:
        {"all": ..., "personal": ..., "business": ...}
    """
    expenses = list(expenses)
    return {
        "all": calculate_totals(expenses),
        ExpenseType.PERSONAL.value: calculate_totals(
            e for e in expenses if e.expense_type == ExpenseType.PERSONAL
        ),
        ExpenseType.BUSINESS.value: calculate_totals(
            e for e in expenses if e.expense_type == ExpenseType.BUSINESS
        ),
    }


def category_totals(expenses: Iterable[Expense]) -> dict[ExpenseCategory, Decimal]:
    """Monthly cost per category. Uncategorized expenses are left out."""
    totals: dict[ExpenseCategory, Decimal] = defaultdict(Decimal)
    for expense in expenses:
        if _counts(expense) and expense.category is not None:
            totals[expense.category] += expense.monthly_amount
    return dict(totals)


def monthly_cost_as_of(
    expenses: Iterable[Expense],
    history: Iterable[ExpenseEvent],
    as_of: Optional[datetime] = None,
) -> Decimal:
    """
    Monthly cost of active expenses as it stood at `as_of`.

    History up to and including `as_of` is replayed with the same rules as
    the trend chart, so an expense deleted since then still counts and one
    created since then does not. Expenses with no history at all fall back
    to their current row. Without `as_of` the current rows are used.

    `as_of` and the history timestamps must both be naive or both aware.
    """
    expenses = list(expenses)
    if as_of is None:
        return calculate_totals(expenses).monthly

    history = list(history)
    states: dict[UUID, ExpenseState] = {}
    for event in sorted(history, key=lambda e: e.changed_at):
        if event.changed_at > as_of:
            break
        apply_event(states, event)

    tracked = {event.expense_id for event in history}
    total = sum(
        (to_monthly_amount(s.amount, s.frequency) for s in states.values() if s.is_active),
        Decimal("0"),
    )
    for expense in expenses:
        if expense.id not in tracked and _counts(expense):
            total += expense.monthly_amount
    return total
