"""Expense aggregation package."""

from finance_dashboard.expenses.totals import (
    calculate_totals,
    category_totals,
    monthly_cost_as_of,
    totals_by_type,
)

__all__ = [
    "calculate_totals",
    "category_totals",
    "monthly_cost_as_of",
    "totals_by_type",
]
