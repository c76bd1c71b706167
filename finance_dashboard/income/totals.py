"""
Income Totals

Aggregations over monthly income entries and their per-source amounts.
Entry totals are always summed from the amounts; nothing here trusts a
stored total.

Deleted entries and deleted sources never count.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Iterable, Optional
from uuid import UUID

from finance_dashboard.models.income import (
    IncomeAmount,
    IncomeEntry,
    IncomeMonthPoint,
    IncomeSource,
    IncomeStats,
    SourceBreakdownItem,
)
from finance_dashboard.timeline.reconstructor import month_label, round_cents


def _amount_index(amounts: Iterable[IncomeAmount]) -> dict[UUID, dict[UUID, Decimal]]:
    """entry_id -> source_id -> amount."""
    index: dict[UUID, dict[UUID, Decimal]] = defaultdict(dict)
    for amount in amounts:
        index[amount.entry_id][amount.source_id] = amount.amount
    return index


def _live(items):
    return [item for item in items if not item.is_deleted]


def entry_totals(
    entries: Iterable[IncomeEntry],
    amounts: Iterable[IncomeAmount],
) -> dict[UUID, Decimal]:
    """Total per entry. Entries with no amounts total zero."""
    index = _amount_index(amounts)
    return {
        entry.id: sum(index.get(entry.id, {}).values(), Decimal("0"))
        for entry in _live(entries)
    }


def source_amount(
    entry_id: UUID,
    source_id: UUID,
    amounts: Iterable[IncomeAmount],
) -> Decimal:
    """What a source paid in an entry, zero if it has no amount there."""
    for amount in amounts:
        if amount.entry_id == entry_id and amount.source_id == source_id:
            return amount.amount
    return Decimal("0")


def available_years(entries: Iterable[IncomeEntry]) -> list[int]:
    """Years that have entries, newest first."""
    return sorted({entry.month.year for entry in _live(entries)}, reverse=True)


def filter_by_year(
    entries: Iterable[IncomeEntry],
    year: Optional[int] = None,
) -> list[IncomeEntry]:
    """Live entries in `year` (all years when None), newest month first."""
    selected = [
        entry for entry in _live(entries)
        if year is None or entry.month.year == year
    ]
    return sorted(selected, key=lambda e: e.month, reverse=True)


def income_stats(
    entries: Iterable[IncomeEntry],
    amounts: Iterable[IncomeAmount],
) -> IncomeStats:
    """
    Total, average per entry, and best month.

    The best month is the first entry (in the order given) with the highest
    total above zero. When every month is zero or negative there is no best
    month.
    """
    entries = _live(entries)
    if not entries:
        return IncomeStats()

    totals = entry_totals(entries, amounts)
    total = sum(totals.values(), Decimal("0"))

    best_month = None
    best_total = Decimal("0")
    for entry in entries:
        if totals[entry.id] > best_total:
            best_month = entry.month
            best_total = totals[entry.id]

    return IncomeStats(
        total=total,
        monthly_average=round_cents(total / len(entries)),
        best_month=best_month,
        best_month_total=best_total,
    )


def source_breakdown(
    sources: Iterable[IncomeSource],
    entries: Iterable[IncomeEntry],
    amounts: Iterable[IncomeAmount],
) -> list[SourceBreakdownItem]:
    """
    Income per active source across `entries`, in source order.

    Sources whose total is zero are left out. Negative totals are kept.
    """
    index = _amount_index(amounts)
    entries = _live(entries)

    breakdown = []
    for source in _live(sources):
        if not source.is_active:
            continue
        total = sum(
            (index.get(entry.id, {}).get(source.id, Decimal("0")) for entry in entries),
            Decimal("0"),
        )
        if total == 0:
            continue
        breakdown.append(SourceBreakdownItem(
            source_id=source.id,
            name=source.name,
            color=source.color,
            total=total,
        ))
    return breakdown


def sources_with_data(
    sources: Iterable[IncomeSource],
    entries: Iterable[IncomeEntry],
    amounts: Iterable[IncomeAmount],
) -> list[IncomeSource]:
    """Active sources with a non-zero amount in at least one of `entries`."""
    index = _amount_index(amounts)
    entries = _live(entries)
    return [
        source for source in _live(sources)
        if source.is_active and any(
            index.get(entry.id, {}).get(source.id, Decimal("0")) != 0
            for entry in entries
        )
    ]


def income_trend(
    entries: Iterable[IncomeEntry],
    sources: Iterable[IncomeSource],
    amounts: Iterable[IncomeAmount],
    limit: Optional[int] = None,
) -> list[IncomeMonthPoint]:
    """
    The most recent `limit` months of income, oldest first.

    Every source gets a value in `by_source`, zero where it paid nothing,
    so each chart series has a point for every month.
    """
    if limit is not None and limit < 1:
        raise ValueError("limit must be at least 1")

    index = _amount_index(amounts)
    sources = _live(sources)
    recent = filter_by_year(entries)
    if limit is not None:
        recent = recent[:limit]

    points = []
    for entry in reversed(recent):
        by_entry = index.get(entry.id, {})
        points.append(IncomeMonthPoint(
            month=entry.month_key,
            label=month_label(entry.month_key),
            total=sum(by_entry.values(), Decimal("0")),
            by_source={
                source.slug: by_entry.get(source.id, Decimal("0"))
                for source in sources
            },
        ))
    return points


def net_position(income_total: Decimal, monthly_expenses: Decimal) -> Decimal:
    """Income left after recurring expenses. Negative means a shortfall."""
    return income_total - monthly_expenses
