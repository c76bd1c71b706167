"""Services package."""

from finance_dashboard.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    ExpenseStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
    HistoryDataError,
    InMemoryAuditStorage,
    InMemoryExpenseStorage,
    NotFoundError,
    StorageError,
)

__all__ = [
    "AuditStorageInterface",
    "ConnectionError",
    "ExpenseStorageInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsExpenseStorage",
    "HistoryDataError",
    "InMemoryAuditStorage",
    "InMemoryExpenseStorage",
    "NotFoundError",
    "StorageError",
]
