"""Presentation utilities."""

from finance_dashboard.utils.formatting import (
    PRIVACY_STATE_KEY,
    DisplayPreferences,
    calculate_percentage_change,
    compute_chart_ticks,
    evenly_space_pick,
    format_axis_tick,
    format_currency,
    format_date,
    format_masked_currency,
    format_month,
    format_month_short,
    format_percentage,
    mask_value,
    parse_local_date,
    session_preferences,
    truncate,
)

__all__ = [
    "PRIVACY_STATE_KEY",
    "DisplayPreferences",
    "calculate_percentage_change",
    "compute_chart_ticks",
    "evenly_space_pick",
    "format_axis_tick",
    "format_currency",
    "format_date",
    "format_masked_currency",
    "format_month",
    "format_month_short",
    "format_percentage",
    "mask_value",
    "parse_local_date",
    "session_preferences",
    "truncate",
]
