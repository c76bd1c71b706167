"""
Abstract Storage Interface

DESIGN DECISION: The dashboard only reads and appends; the backend is a
black box behind this interface. This allows us to:
1. Swap Google Sheets for a hosted database later
2. Use in-memory storage for tests and local runs
3. Keep the timeline and totals code free of storage details

The interfaces are intentionally small - just the operations the dashboard
needs for expenses and their history, income, and net worth.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from finance_dashboard.models.audit import AuditEvent
from finance_dashboard.models.expense import Expense, ExpenseEvent
from finance_dashboard.models.income import IncomeAmount, IncomeEntry, IncomeSource
from finance_dashboard.models.net_worth import NetWorthEntry


class ExpenseStorageInterface(ABC):
    """
    Abstract interface for expense and expense-history storage.

    History is append-only: there is no update or delete for events.
    """

    @abstractmethod
    async def list_expenses(self, include_deleted: bool = False) -> list[Expense]:
        """
        List current expense rows.

        Args:
            include_deleted: Also return soft-deleted expenses

        Returns:
            Expenses ordered by name
        """
        pass

    @abstractmethod
    async def get_expense(self, expense_id: UUID) -> Optional[Expense]:
        """
        Retrieve an expense by its ID.

        Returns:
            The expense if found, None otherwise
        """
        pass

    @abstractmethod
    async def save_expense(self, expense: Expense) -> bool:
        """
        Insert or replace an expense row.

        Returns:
            True if saved successfully

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def list_history(
        self,
        expense_id: Optional[UUID] = None,
    ) -> list[ExpenseEvent]:
        """
        List expense history events.

        Args:
            expense_id: Only events for this expense. All events if None.

        Returns:
            Events in storage order (callers must not rely on it being
            chronological)

        Raises:
            HistoryDataError: If a stored row cannot be parsed
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def append_history_event(self, event: ExpenseEvent) -> bool:
        """
        Append an event to the history log.

        Returns:
            True if appended successfully

        Raises:
            StorageError: If append fails
        """
        pass


class IncomeStorageInterface(ABC):
    """
    Abstract interface for income sources, monthly entries and amounts.

    An entry has at most one amount per source; saving an amount for an
    (entry, source) pair that already has one replaces it.
    """

    @abstractmethod
    async def list_sources(self, include_deleted: bool = False) -> list[IncomeSource]:
        """
        List income sources.

        Returns:
            Sources ordered by sort_order, then name
        """
        pass

    @abstractmethod
    async def save_source(self, source: IncomeSource) -> bool:
        """Insert or replace a source row."""
        pass

    @abstractmethod
    async def list_entries(self, include_deleted: bool = False) -> list[IncomeEntry]:
        """
        List monthly income entries.

        Returns:
            Entries ordered by month, newest first
        """
        pass

    @abstractmethod
    async def save_entry(self, entry: IncomeEntry) -> bool:
        """Insert or replace an entry row."""
        pass

    @abstractmethod
    async def list_amounts(self, entry_id: Optional[UUID] = None) -> list[IncomeAmount]:
        """
        List per-source amounts.

        Args:
            entry_id: Only amounts for this entry. All amounts if None.
        """
        pass

    @abstractmethod
    async def save_amount(self, amount: IncomeAmount) -> IncomeAmount:
        """
        Insert an amount, or replace the existing one for the same entry
        and source.

        Returns:
            The stored amount (keeps the existing row's ID on replace)

        Raises:
            StorageError: If save fails
        """
        pass


class NetWorthStorageInterface(ABC):
    """Abstract interface for net worth snapshots."""

    @abstractmethod
    async def list_entries(self, include_deleted: bool = False) -> list[NetWorthEntry]:
        """
        List snapshots.

        Returns:
            Snapshots ordered by date, newest first
        """
        pass

    @abstractmethod
    async def get_entry(self, entry_id: UUID) -> Optional[NetWorthEntry]:
        pass

    @abstractmethod
    async def save_entry(self, entry: NetWorthEntry) -> bool:
        """
        Insert or replace a snapshot row.

        Raises:
            StorageError: If save fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class HistoryDataError(StorageError):
    """
    A stored history row is malformed.

    CRITICAL: We fail instead of skipping the row. A chart built from a
    partial history would show wrong totals without any sign of it.
    """
    pass
