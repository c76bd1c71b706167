"""
Net Worth History

Derived figures over dated net worth snapshots: the change from each
snapshot's predecessor, period stats and chart series.

Snapshots sharing a date keep their input order (the sort is stable).
Deleted snapshots are ignored.
"""

from decimal import Decimal
from typing import Iterable, Optional
from uuid import UUID

from finance_dashboard.models.net_worth import (
    NetWorthChange,
    NetWorthEntry,
    NetWorthPoint,
    NetWorthStats,
)
from finance_dashboard.timeline.reconstructor import round_cents
from finance_dashboard.utils.formatting import MONTH_NAMES


def chronological(entries: Iterable[NetWorthEntry]) -> list[NetWorthEntry]:
    """Live snapshots, oldest first."""
    return sorted(
        (e for e in entries if not e.is_deleted),
        key=lambda e: e.date,
    )


def newest_first(entries: Iterable[NetWorthEntry]) -> list[NetWorthEntry]:
    return list(reversed(chronological(entries)))


def available_years(entries: Iterable[NetWorthEntry]) -> list[int]:
    """Years that have snapshots, newest first."""
    return sorted({e.date.year for e in entries if not e.is_deleted}, reverse=True)


def filter_by_year(
    entries: Iterable[NetWorthEntry],
    year: Optional[int] = None,
) -> list[NetWorthEntry]:
    """Live snapshots in `year` (all years when None), newest first."""
    return [e for e in newest_first(entries) if year is None or e.date.year == year]


def changes_from_previous(entries: Iterable[NetWorthEntry]) -> dict[UUID, Decimal]:
    """
    Entry ID -> change from the snapshot dated just before it.

    The oldest snapshot has no predecessor and gets zero.
    """
    ordered = chronological(entries)
    changes = {}
    previous = None
    for entry in ordered:
        changes[entry.id] = entry.amount - previous.amount if previous else Decimal("0")
        previous = entry
    return changes


def change_series(
    selected: Iterable[NetWorthEntry],
    all_entries: Iterable[NetWorthEntry],
) -> list[NetWorthChange]:
    """
    Change bars for `selected`, oldest first.

    Predecessors are looked up in `all_entries`, so the first snapshot of
    a year is compared with the last one of the year before. A snapshot
    with no predecessor anywhere is left out.
    """
    ordered_all = chronological(all_entries)
    position = {entry.id: i for i, entry in enumerate(ordered_all)}

    series = []
    for entry in chronological(selected):
        index = position.get(entry.id)
        if not index:  # first overall, or not in the full list
            continue
        previous = ordered_all[index - 1]
        series.append(NetWorthChange(
            entry_id=entry.id,
            date=entry.date,
            change=entry.amount - previous.amount,
        ))
    return series


def net_worth_stats(entries: Iterable[NetWorthEntry]) -> NetWorthStats:
    """High, low, average and last-minus-first. All zero when empty."""
    ordered = chronological(entries)
    if not ordered:
        return NetWorthStats()

    values = [e.amount for e in ordered]
    return NetWorthStats(
        high=max(values),
        low=min(values),
        average=round_cents(sum(values, Decimal("0")) / len(values)),
        total_change=ordered[-1].amount - ordered[0].amount,
    )


def net_worth_trend(
    entries: Iterable[NetWorthEntry],
    limit: Optional[int] = None,
) -> list[NetWorthPoint]:
    """The most recent `limit` snapshots, oldest first, labelled like 'Jan 2025'."""
    if limit is not None and limit < 1:
        raise ValueError("limit must be at least 1")

    recent = newest_first(entries)
    if limit is not None:
        recent = recent[:limit]
    return [
        NetWorthPoint(
            date=entry.date,
            label=f"{MONTH_NAMES[entry.date.month - 1][:3]} {entry.date.year}",
            amount=entry.amount,
        )
        for entry in reversed(recent)
    ]


def latest_two(
    entries: Iterable[NetWorthEntry],
) -> tuple[Optional[NetWorthEntry], Optional[NetWorthEntry]]:
    """(current, previous) snapshots; either may be None."""
    ordered = newest_first(entries)
    current = ordered[0] if ordered else None
    previous = ordered[1] if len(ordered) > 1 else None
    return current, previous
