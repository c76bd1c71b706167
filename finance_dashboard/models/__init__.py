"""
Data Models Package

This package contains all Pydantic models used in the Finance Dashboard.
All data flowing through the system must conform to these schemas.
"""

from finance_dashboard.models.expense import (
    AmountHistoryPoint,
    Expense,
    ExpenseCategory,
    ExpenseEvent,
    ExpenseEventType,
    ExpenseFrequency,
    ExpenseState,
    ExpenseSummary,
    ExpenseTotals,
    ExpenseType,
    MonthlySnapshot,
)
from finance_dashboard.models.income import (
    IncomeAmount,
    IncomeEntry,
    IncomeMonthPoint,
    IncomeOverview,
    IncomeSource,
    IncomeStats,
    SourceBreakdownItem,
)
from finance_dashboard.models.net_worth import (
    NetWorthChange,
    NetWorthEntry,
    NetWorthOverview,
    NetWorthPoint,
    NetWorthStats,
)
from finance_dashboard.models.dashboard import DashboardSummary
from finance_dashboard.models.automation import (
    DurationType,
    ScheduleFrequency,
    ScheduleUpdate,
    TriggerConfig,
)
from finance_dashboard.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Expense models
    "AmountHistoryPoint",
    "Expense",
    "ExpenseCategory",
    "ExpenseEvent",
    "ExpenseEventType",
    "ExpenseFrequency",
    "ExpenseState",
    "ExpenseSummary",
    "ExpenseTotals",
    "ExpenseType",
    "MonthlySnapshot",
    # Income models
    "IncomeAmount",
    "IncomeEntry",
    "IncomeMonthPoint",
    "IncomeOverview",
    "IncomeSource",
    "IncomeStats",
    "SourceBreakdownItem",
    # Net worth models
    "NetWorthChange",
    "NetWorthEntry",
    "NetWorthOverview",
    "NetWorthPoint",
    "NetWorthStats",
    "DashboardSummary",
    # Automation models
    "DurationType",
    "ScheduleFrequency",
    "ScheduleUpdate",
    "TriggerConfig",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
