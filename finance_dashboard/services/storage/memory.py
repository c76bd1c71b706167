"""
In-Memory Storage

Used by the test suite and as the fallback when no spreadsheet is
configured. Data lives for the lifetime of the object.
"""

from typing import Optional
from uuid import UUID

from finance_dashboard.models.audit import AuditEvent
from finance_dashboard.models.expense import Expense, ExpenseEvent
from finance_dashboard.models.income import IncomeAmount, IncomeEntry, IncomeSource
from finance_dashboard.models.net_worth import NetWorthEntry
from finance_dashboard.services.storage.interface import (
    AuditStorageInterface,
    ExpenseStorageInterface,
    IncomeStorageInterface,
    NetWorthStorageInterface,
)


class InMemoryExpenseStorage(ExpenseStorageInterface):
    """List-backed expense storage."""

    def __init__(
        self,
        expenses: Optional[list[Expense]] = None,
        history: Optional[list[ExpenseEvent]] = None,
    ):
        self._expenses: dict[UUID, Expense] = {e.id: e for e in expenses or []}
        self._history: list[ExpenseEvent] = list(history or [])

    async def list_expenses(self, include_deleted: bool = False) -> list[Expense]:
        expenses = [
            e for e in self._expenses.values()
            if include_deleted or not e.is_deleted
        ]
        return sorted(expenses, key=lambda e: e.name.lower())

    async def get_expense(self, expense_id: UUID) -> Optional[Expense]:
        return self._expenses.get(expense_id)

    async def save_expense(self, expense: Expense) -> bool:
        self._expenses[expense.id] = expense
        return True

    async def list_history(
        self,
        expense_id: Optional[UUID] = None,
    ) -> list[ExpenseEvent]:
        if expense_id is None:
            return list(self._history)
        return [e for e in self._history if e.expense_id == expense_id]

    async def append_history_event(self, event: ExpenseEvent) -> bool:
        self._history.append(event)
        return True


class InMemoryIncomeStorage(IncomeStorageInterface):
    """Dict-backed income storage."""

    def __init__(
        self,
        sources: Optional[list[IncomeSource]] = None,
        entries: Optional[list[IncomeEntry]] = None,
        amounts: Optional[list[IncomeAmount]] = None,
    ):
        self._sources: dict[UUID, IncomeSource] = {s.id: s for s in sources or []}
        self._entries: dict[UUID, IncomeEntry] = {e.id: e for e in entries or []}
        self._amounts: list[IncomeAmount] = list(amounts or [])

    async def list_sources(self, include_deleted: bool = False) -> list[IncomeSource]:
        sources = [
            s for s in self._sources.values()
            if include_deleted or not s.is_deleted
        ]
        return sorted(sources, key=lambda s: (s.sort_order, s.name.lower()))

    async def save_source(self, source: IncomeSource) -> bool:
        self._sources[source.id] = source
        return True

    async def list_entries(self, include_deleted: bool = False) -> list[IncomeEntry]:
        entries = [
            e for e in self._entries.values()
            if include_deleted or not e.is_deleted
        ]
        return sorted(entries, key=lambda e: e.month, reverse=True)

    async def save_entry(self, entry: IncomeEntry) -> bool:
        self._entries[entry.id] = entry
        return True

    async def list_amounts(self, entry_id: Optional[UUID] = None) -> list[IncomeAmount]:
        if entry_id is None:
            return list(self._amounts)
        return [a for a in self._amounts if a.entry_id == entry_id]

    async def save_amount(self, amount: IncomeAmount) -> IncomeAmount:
        for i, existing in enumerate(self._amounts):
            if (existing.entry_id, existing.source_id) == (amount.entry_id, amount.source_id):
                stored = amount.model_copy(update={
                    "id": existing.id,
                    "created_at": existing.created_at,
                })
                self._amounts[i] = stored
                return stored
        self._amounts.append(amount)
        return amount


class InMemoryNetWorthStorage(NetWorthStorageInterface):
    """Dict-backed net worth storage."""

    def __init__(self, entries: Optional[list[NetWorthEntry]] = None):
        self._entries: dict[UUID, NetWorthEntry] = {e.id: e for e in entries or []}

    async def list_entries(self, include_deleted: bool = False) -> list[NetWorthEntry]:
        entries = [
            e for e in self._entries.values()
            if include_deleted or not e.is_deleted
        ]
        return sorted(entries, key=lambda e: e.date, reverse=True)

    async def get_entry(self, entry_id: UUID) -> Optional[NetWorthEntry]:
        return self._entries.get(entry_id)

    async def save_entry(self, entry: NetWorthEntry) -> bool:
        self._entries[entry.id] = entry
        return True


class InMemoryAuditStorage(AuditStorageInterface):
    """List-backed audit storage."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
