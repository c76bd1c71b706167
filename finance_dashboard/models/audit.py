"""
Audit Models for the Finance Dashboard

Every page load that reads financial data, and every change written to
expense history, produces an audit event. This gives:
1. A trace of which figures were shown and where they came from
2. Debugging information when a chart looks wrong
3. A record of storage failures

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Expense history
    HISTORY_LOADED = "history_loaded"
    HISTORY_EVENT_APPENDED = "history_event_appended"

    # Income and net worth
    INCOME_RECORDED = "income_recorded"
    NET_WORTH_RECORDED = "net_worth_recorded"

    # Derived views
    TIMELINE_RECONSTRUCTED = "timeline_reconstructed"
    SUMMARY_CALCULATED = "summary_calculated"

    # Automations
    AUTOMATION_SCHEDULED = "automation_scheduled"
    AUTOMATION_DEACTIVATED = "automation_deactivated"

    # System events
    SYSTEM_ERROR = "system_error"
    STORAGE_ERROR = "storage_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'automation')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one page render)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.history_loaded(event_count, correlation_id)
        event = AuditEventBuilder.timeline_reconstructed(months, correlation_id)
    """

    @staticmethod
    def history_loaded(
        event_count: int,
        expense_id: Optional[UUID],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.HISTORY_LOADED,
            entity_type="expense" if expense_id else "expense_history",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Loaded {event_count} expense history events",
            details={
                "event_count": event_count,
            },
        )

    @staticmethod
    def history_event_appended(
        expense_id: UUID,
        event_type: str,
        amount: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.HISTORY_EVENT_APPENDED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense {event_type}: ${amount}",
            details={
                "event_type": event_type,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def income_recorded(
        entry_id: UUID,
        month: str,
        total: str,
        source_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INCOME_RECORDED,
            entity_type="income_entry",
            entity_id=entry_id,
            correlation_id=correlation_id,
            description=f"Income for {month}: ${total}",
            details={
                "month": month,
                "total": total,
                "source_count": source_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def net_worth_recorded(
        entry_id: UUID,
        entry_date: str,
        amount: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NET_WORTH_RECORDED,
            entity_type="net_worth",
            entity_id=entry_id,
            correlation_id=correlation_id,
            description=f"Net worth on {entry_date}: ${amount}",
            details={
                "date": entry_date,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def timeline_reconstructed(
        event_count: int,
        months: list[str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TIMELINE_RECONSTRUCTED,
            entity_type="expense_history",
            correlation_id=correlation_id,
            description=f"Replayed {event_count} events into {len(months)} monthly snapshots",
            details={
                "event_count": event_count,
                "first_month": months[0] if months else None,
                "last_month": months[-1] if months else None,
            },
        )

    @staticmethod
    def summary_calculated(
        expense_count: int,
        monthly_total: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUMMARY_CALCULATED,
            entity_type="expense",
            correlation_id=correlation_id,
            description=f"Expense summary over {expense_count} expenses",
            details={
                "expense_count": expense_count,
                "monthly_total": monthly_total,
            },
        )

    @staticmethod
    def automation_scheduled(
        automation_id: UUID,
        next_run_at: str,
        runs_completed: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AUTOMATION_SCHEDULED,
            entity_type="automation",
            entity_id=automation_id,
            description=f"Automation next run at {next_run_at}",
            details={
                "next_run_at": next_run_at,
                "runs_completed": runs_completed,
            },
        )

    @staticmethod
    def automation_deactivated(
        automation_id: UUID,
        reason: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AUTOMATION_DEACTIVATED,
            severity=AuditSeverity.WARNING,
            entity_type="automation",
            entity_id=automation_id,
            description=f"Automation deactivated: {reason}",
            details={
                "reason": reason,
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"Storage error during {operation}",
            error_message=error_message,
            details={
                "operation": operation,
            },
            correlation_id=correlation_id,
        )
