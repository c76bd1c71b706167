"""Income aggregation package."""

from finance_dashboard.income.totals import (
    available_years,
    entry_totals,
    filter_by_year,
    income_stats,
    income_trend,
    net_position,
    source_amount,
    source_breakdown,
    sources_with_data,
)

__all__ = [
    "available_years",
    "entry_totals",
    "filter_by_year",
    "income_stats",
    "income_trend",
    "net_position",
    "source_amount",
    "source_breakdown",
    "sources_with_data",
]
