"""Expense timeline package."""

from finance_dashboard.timeline.reconstructor import (
    DEFAULT_WINDOW_MONTHS,
    ExpenseTimelineReconstructor,
    TimelineError,
    UnknownFrequencyError,
    amount_history,
    month_key,
    month_label,
    reconstruct,
    round_cents,
    to_annual_amount,
    to_monthly_amount,
)

__all__ = [
    "DEFAULT_WINDOW_MONTHS",
    "ExpenseTimelineReconstructor",
    "TimelineError",
    "UnknownFrequencyError",
    "amount_history",
    "month_key",
    "month_label",
    "reconstruct",
    "round_cents",
    "to_annual_amount",
    "to_monthly_amount",
]
