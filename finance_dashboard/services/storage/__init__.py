"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the hosted backend; the in-memory backend serves tests and
unconfigured local runs.
"""

from finance_dashboard.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    ExpenseStorageInterface,
    HistoryDataError,
    IncomeStorageInterface,
    NetWorthStorageInterface,
    NotFoundError,
    StorageError,
)
from finance_dashboard.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryExpenseStorage,
    InMemoryIncomeStorage,
    InMemoryNetWorthStorage,
)
from finance_dashboard.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
    GoogleSheetsIncomeStorage,
    GoogleSheetsNetWorthStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "ExpenseStorageInterface",
    "IncomeStorageInterface",
    "NetWorthStorageInterface",
    # Exceptions
    "ConnectionError",
    "HistoryDataError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryExpenseStorage",
    "InMemoryIncomeStorage",
    "InMemoryNetWorthStorage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsExpenseStorage",
    "GoogleSheetsIncomeStorage",
    "GoogleSheetsNetWorthStorage",
]
