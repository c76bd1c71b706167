"""Net worth history package."""

from finance_dashboard.net_worth.history import (
    available_years,
    change_series,
    changes_from_previous,
    chronological,
    filter_by_year,
    latest_two,
    net_worth_stats,
    net_worth_trend,
    newest_first,
)

__all__ = [
    "available_years",
    "change_series",
    "changes_from_previous",
    "chronological",
    "filter_by_year",
    "latest_two",
    "net_worth_stats",
    "net_worth_trend",
    "newest_first",
]
