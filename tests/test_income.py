"""
Tests for income models and aggregations.
"""

import pytest
from datetime import date, datetime
from decimal import Decimal

from pydantic import ValidationError

from finance_dashboard.income import (
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
from finance_dashboard.models.income import IncomeAmount, IncomeEntry, IncomeSource


SALARY = IncomeSource(name="Salary", slug="salary")
BONUS = IncomeSource(name="Bonus", slug="bonus", sort_order=1)
OLD_JOB = IncomeSource(name="Old job", slug="old-job", is_active=False)


def pay(entry, source, amount):
    return IncomeAmount(entry_id=entry.id, source_id=source.id, amount=Decimal(amount))


class TestIncomeModels:
    """Tests for income model validation."""

    def test_month_is_first_of_month(self):
        assert IncomeEntry(month="2025-03").month == date(2025, 3, 1)
        assert IncomeEntry(month="2025-03-17").month == date(2025, 3, 1)
        assert IncomeEntry(month=date(2025, 3, 17)).month_key == "2025-03"

    def test_rejects_bad_month(self):
        with pytest.raises(ValidationError, match="Invalid month"):
            IncomeEntry(month="March 2025")

    def test_rejects_bad_slug(self):
        with pytest.raises(ValidationError):
            IncomeSource(name="Day job", slug="Day Job")


class TestEntryTotals:
    """Tests for per-entry totals."""

    def test_totals_sum_amounts(self):
        jan, feb = IncomeEntry(month="2025-01"), IncomeEntry(month="2025-02")
        amounts = [pay(jan, SALARY, "3000"), pay(jan, BONUS, "500")]

        assert entry_totals([jan, feb], amounts) == {
            jan.id: Decimal("3500"),
            feb.id: Decimal("0"),
        }

    def test_source_amount_defaults_to_zero(self):
        jan = IncomeEntry(month="2025-01")
        amounts = [pay(jan, SALARY, "3000")]
        assert source_amount(jan.id, SALARY.id, amounts) == Decimal("3000")
        assert source_amount(jan.id, BONUS.id, amounts) == Decimal("0")

    def test_deleted_entries_are_ignored(self):
        jan = IncomeEntry(month="2025-01", deleted_at=datetime(2025, 2, 1))
        assert entry_totals([jan], [pay(jan, SALARY, "3000")]) == {}
        assert available_years([jan]) == []


class TestYearFilter:
    def test_years_newest_first(self):
        entries = [IncomeEntry(month="2023-05"), IncomeEntry(month="2025-01"), IncomeEntry(month="2025-02")]
        assert available_years(entries) == [2025, 2023]

    def test_filter_sorts_newest_first(self):
        entries = [IncomeEntry(month="2025-01"), IncomeEntry(month="2024-12"), IncomeEntry(month="2025-02")]
        assert [e.month_key for e in filter_by_year(entries, 2025)] == ["2025-02", "2025-01"]
        assert len(filter_by_year(entries)) == 3


class TestIncomeStats:
    """Tests for the income stat cards."""

    def test_stats(self):
        jan, feb, mar = (IncomeEntry(month=m) for m in ("2025-01", "2025-02", "2025-03"))
        amounts = [pay(jan, SALARY, "3000"), pay(feb, SALARY, "3500"), pay(mar, SALARY, "2500")]

        stats = income_stats([jan, feb, mar], amounts)

        assert stats.total == Decimal("9000")
        assert stats.monthly_average == Decimal("3000.00")
        assert stats.best_month == date(2025, 2, 1)
        assert stats.best_month_total == Decimal("3500")

    def test_average_is_rounded(self):
        entries = [IncomeEntry(month=m) for m in ("2025-01", "2025-02", "2025-03")]
        amounts = [pay(entries[0], SALARY, "100")]
        assert income_stats(entries, amounts).monthly_average == Decimal("33.33")

    def test_no_best_month_without_positive_income(self):
        """Test that zero and negative months never count as the best month."""
        jan, feb = IncomeEntry(month="2025-01"), IncomeEntry(month="2025-02")
        stats = income_stats([jan, feb], [pay(feb, SALARY, "-50")])
        assert stats.best_month is None
        assert stats.best_month_total == Decimal("0")
        assert stats.total == Decimal("-50")

    def test_first_listed_month_wins_a_tie(self):
        jan, feb = IncomeEntry(month="2025-01"), IncomeEntry(month="2025-02")
        amounts = [pay(jan, SALARY, "100"), pay(feb, SALARY, "100")]
        assert income_stats([feb, jan], amounts).best_month == date(2025, 2, 1)

    def test_empty(self):
        stats = income_stats([], [])
        assert stats.total == Decimal("0")
        assert stats.monthly_average == Decimal("0")


class TestSourceBreakdown:
    """Tests for income by source."""

    def test_breakdown_skips_inactive_and_zero(self):
        jan = IncomeEntry(month="2025-01")
        amounts = [
            pay(jan, SALARY, "3000"),
            pay(jan, BONUS, "0"),
            pay(jan, OLD_JOB, "400"),
        ]

        breakdown = source_breakdown([SALARY, BONUS, OLD_JOB], [jan], amounts)

        assert [(b.name, b.total) for b in breakdown] == [("Salary", Decimal("3000"))]
        assert sources_with_data([SALARY, BONUS, OLD_JOB], [jan], amounts) == [SALARY]

    def test_negative_totals_are_kept(self):
        jan = IncomeEntry(month="2025-01")
        breakdown = source_breakdown([BONUS], [jan], [pay(jan, BONUS, "-75")])
        assert breakdown[0].total == Decimal("-75")


class TestIncomeTrend:
    """Tests for the income trend series."""

    def test_trend_is_oldest_first_with_every_source(self):
        entries = [IncomeEntry(month=m) for m in ("2025-03", "2025-01", "2025-02")]
        amounts = [pay(entries[1], SALARY, "3000"), pay(entries[0], BONUS, "200")]

        trend = income_trend(entries, [SALARY, BONUS], amounts, limit=2)

        assert [p.month for p in trend] == ["2025-02", "2025-03"]
        assert trend[1].by_source == {"salary": Decimal("0"), "bonus": Decimal("200")}
        assert trend[1].label == "Mar 25"

    def test_limit_must_be_positive(self):
        with pytest.raises(ValueError):
            income_trend([], [], [], limit=0)


class TestNetPosition:
    def test_shortfall_is_negative(self):
        assert net_position(Decimal("3000"), Decimal("3250.50")) == Decimal("-250.50")
