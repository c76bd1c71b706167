"""
Tests for presentation helpers.
"""

from datetime import date
from decimal import Decimal

from finance_dashboard.utils import (
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


HIDDEN = DisplayPreferences(privacy_hidden=True)
VISIBLE = DisplayPreferences()


class TestCurrency:
    """Tests for currency formatting."""

    def test_standard_format(self):
        """Test grouping and cents."""
        assert format_currency(Decimal("1234.5")) == "$1,234.50"
        assert format_currency(1200) == "$1,200"
        assert format_currency(0) == "$0"

    def test_negative_amount(self):
        assert format_currency(-50) == "-$50"

    def test_show_sign(self):
        """Test explicit sign for changes."""
        assert format_currency(25, show_sign=True) == "+$25"
        assert format_currency(-25, show_sign=True) == "-$25"
        assert format_currency(0, show_sign=True) == "$0"

    def test_compact(self):
        """Test compact thousands and millions."""
        assert format_currency(1500000, compact=True) == "$1.5M"
        assert format_currency(24000, compact=True) == "$24K"
        assert format_currency(Decimal("950.4"), compact=True) == "$950"
        assert format_currency(-2000, compact=True) == "-$2K"

    def test_axis_ticks(self):
        """Test Y axis tick labels."""
        assert format_axis_tick(1000) == "$1k"
        assert format_axis_tick(1500) == "$1.5k"
        assert format_axis_tick(950) == "$950"
        assert format_axis_tick(Decimal("12.5")) == "$12.5"

    def test_axis_ticks_hidden(self):
        assert format_axis_tick(1000, HIDDEN) == "•••"


class TestPercentages:
    """Tests for percentage change and formatting."""

    def test_percentage_change(self):
        assert calculate_percentage_change(110, 100) == 10.0
        assert calculate_percentage_change(Decimal("50"), Decimal("-100")) == 150.0

    def test_percentage_change_from_zero(self):
        """Test that a zero baseline does not divide by zero."""
        assert calculate_percentage_change(5, 0) == 100.0
        assert calculate_percentage_change(-5, 0) == -100.0
        assert calculate_percentage_change(0, 0) == 0.0

    def test_format_percentage(self):
        assert format_percentage(12.54) == "+12.5%"
        assert format_percentage(-3.0) == "-3%"
        assert format_percentage(0) == "0%"
        assert format_percentage(-0.04) == "0%"


class TestDates:
    """Tests for date parsing and labels."""

    def test_parse_local_date(self):
        """Test that date strings are not shifted by timezones."""
        assert parse_local_date("2025-03-01") == date(2025, 3, 1)
        assert parse_local_date("2025-03") == date(2025, 3, 1)
        assert parse_local_date("2025-03-15T00:00:00Z") == date(2025, 3, 15)

    def test_month_and_date_labels(self):
        assert format_month("2025-01") == "January 2025"
        assert format_month_short("2025-01") == "Jan 2025"
        assert format_date("2025-01-05") == "January 5, 2025"
        assert format_date(date(2024, 12, 31)) == "December 31, 2024"

    def test_truncate(self):
        assert truncate("hello world", 5) == "hello..."
        assert truncate("hi", 5) == "hi"


class TestChartTicks:
    """Tests for X axis tick selection."""

    def test_evenly_space_pick(self):
        """Test constant step from the first item."""
        assert evenly_space_pick(list(range(10)), 4) == [0, 3, 6, 9]
        assert evenly_space_pick([1, 2], 5) == [1, 2]

    def test_short_range_uses_month_labels(self):
        dates = ["2025-01-01", "2025-02-01", "2025-03-01"]
        ticks, formatter = compute_chart_ticks(dates)
        assert ticks == dates
        assert formatter("2025-03-01") == "Mar"

    def test_long_range_uses_year_labels(self):
        dates = [f"{year}-{month:02d}-01" for year in (2023, 2024, 2025) for month in (1, 7)]
        ticks, formatter = compute_chart_ticks(dates, max_ticks=3)
        assert ticks == ["2023-01-01", "2024-01-01", "2025-01-01"]
        assert formatter("2024-07-01") == "2024"

    def test_empty_series(self):
        ticks, formatter = compute_chart_ticks([])
        assert ticks == []
        assert formatter("x") == "x"


class TestPrivacy:
    """Tests for privacy masking."""

    def test_mask_value(self):
        assert mask_value("$10", VISIBLE) == "$10"
        assert mask_value("$10", HIDDEN) == "•••••"
        assert mask_value("$10", HIDDEN, revealed=True) == "$10"

    def test_format_masked_currency(self):
        assert format_masked_currency(1200, VISIBLE) == "$1,200"
        assert format_masked_currency(1200, HIDDEN) == "•••••"

    def test_session_starts_from_configured_default(self):
        """Test that a new session picks up the configured privacy default."""
        state = {}
        assert session_preferences(state, privacy_default=True).privacy_hidden is True
        assert state == {"privacy_hidden": True}

    def test_session_value_wins_after_toggle(self):
        state = {}
        session_preferences(state, privacy_default=True)
        state["privacy_hidden"] = False
        assert session_preferences(state, privacy_default=True).privacy_hidden is False
