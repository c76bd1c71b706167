"""
Tests for net worth history.
"""

import pytest
from datetime import date, datetime
from decimal import Decimal

from finance_dashboard.models.net_worth import NetWorthEntry
from finance_dashboard.net_worth import (
    available_years,
    change_series,
    changes_from_previous,
    filter_by_year,
    latest_two,
    net_worth_stats,
    net_worth_trend,
)


def snapshot(day, amount, **kwargs):
    return NetWorthEntry(date=day, amount=Decimal(amount), **kwargs)


NOV = snapshot(date(2024, 11, 30), "95000")
DEC = snapshot(date(2024, 12, 31), "100000")
JAN = snapshot(date(2025, 1, 31), "104000")
FEB = snapshot(date(2025, 2, 28), "102500")
ALL = [JAN, NOV, FEB, DEC]


class TestChanges:
    """Tests for change from the previous snapshot."""

    def test_changes_from_previous(self):
        assert changes_from_previous(ALL) == {
            NOV.id: Decimal("0"),
            DEC.id: Decimal("5000"),
            JAN.id: Decimal("4000"),
            FEB.id: Decimal("-1500"),
        }

    def test_change_series_looks_back_across_years(self):
        """Test that the first snapshot of a year compares with the prior year."""
        series = change_series(filter_by_year(ALL, 2025), ALL)
        assert [(c.date, c.change) for c in series] == [
            (date(2025, 1, 31), Decimal("4000")),
            (date(2025, 2, 28), Decimal("-1500")),
        ]

    def test_change_series_skips_the_first_snapshot(self):
        series = change_series(ALL, ALL)
        assert [c.entry_id for c in series] == [DEC.id, JAN.id, FEB.id]

    def test_deleted_snapshots_are_ignored(self):
        removed = snapshot(date(2025, 1, 15), "1", deleted_at=datetime(2025, 1, 16))
        changes = changes_from_previous([DEC, removed, JAN])
        assert changes[JAN.id] == Decimal("4000")
        assert removed.id not in changes


class TestStats:
    """Tests for high, low, average and total change."""

    def test_stats(self):
        stats = net_worth_stats(ALL)
        assert stats.high == Decimal("104000")
        assert stats.low == Decimal("95000")
        assert stats.average == Decimal("100375.00")
        assert stats.total_change == Decimal("7500")

    def test_negative_net_worth(self):
        stats = net_worth_stats([snapshot(date(2025, 1, 1), "-3000"), snapshot(date(2025, 2, 1), "-1000")])
        assert stats.high == Decimal("-1000")
        assert stats.low == Decimal("-3000")
        assert stats.total_change == Decimal("2000")

    def test_empty_is_all_zero(self):
        stats = net_worth_stats([])
        assert (stats.high, stats.low, stats.average, stats.total_change) == (0, 0, 0, 0)


class TestTrend:
    """Tests for the trend series and latest snapshots."""

    def test_trend_takes_most_recent_oldest_first(self):
        trend = net_worth_trend(ALL, limit=3)
        assert [p.label for p in trend] == ["Dec 2024", "Jan 2025", "Feb 2025"]
        assert trend[-1].amount == Decimal("102500")

    def test_limit_must_be_positive(self):
        with pytest.raises(ValueError):
            net_worth_trend(ALL, limit=0)

    def test_latest_two(self):
        assert latest_two(ALL) == (FEB, JAN)
        assert latest_two([NOV]) == (NOV, None)
        assert latest_two([]) == (None, None)

    def test_years(self):
        assert available_years(ALL) == [2025, 2024]
        assert filter_by_year(ALL, 2024) == [DEC, NOV]
