"""
Audit Logger

DESIGN DECISION: Every load of financial data and every history write is
logged. This provides:
1. Traceability of the figures shown on the dashboard
2. Debugging capability when a chart looks wrong
3. A record of storage failures

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
import sys
from typing import Optional
from uuid import UUID, uuid4

import structlog

from finance_dashboard.models.audit import AuditEvent, AuditEventBuilder
from finance_dashboard.services.storage import AuditStorageInterface


def configure_logging(debug: bool = False) -> None:
    """
    Configure stdlib logging and structlog for JSON output.

    Safe to call more than once; the last call wins.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=logging.DEBUG if debug else logging.INFO,
        force=True,
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence), when configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("finance_dashboard.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_history_loaded(
        self,
        event_count: int,
        expense_id: Optional[UUID],
        correlation_id: UUID,
    ) -> None:
        """Log a history read."""
        await self.log(AuditEventBuilder.history_loaded(
            event_count=event_count,
            expense_id=expense_id,
            correlation_id=correlation_id,
        ))

    async def log_history_event_appended(
        self,
        expense_id: UUID,
        event_type: str,
        amount: str,
        correlation_id: UUID,
    ) -> None:
        """Log a history write."""
        await self.log(AuditEventBuilder.history_event_appended(
            expense_id=expense_id,
            event_type=event_type,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_income_recorded(
        self,
        entry_id: UUID,
        month: str,
        total: str,
        source_count: int,
        correlation_id: UUID,
    ) -> None:
        """Log an income entry write."""
        await self.log(AuditEventBuilder.income_recorded(
            entry_id=entry_id,
            month=month,
            total=total,
            source_count=source_count,
            correlation_id=correlation_id,
        ))

    async def log_net_worth_recorded(
        self,
        entry_id: UUID,
        entry_date: str,
        amount: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.net_worth_recorded(
            entry_id=entry_id,
            entry_date=entry_date,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_timeline_reconstructed(
        self,
        event_count: int,
        months: list[str],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.timeline_reconstructed(
            event_count=event_count,
            months=months,
            correlation_id=correlation_id,
        ))

    async def log_summary_calculated(
        self,
        expense_count: int,
        monthly_total: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.summary_calculated(
            expense_count=expense_count,
            monthly_total=monthly_total,
            correlation_id=correlation_id,
        ))

    async def log_storage_error(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a storage failure."""
        await self.log(AuditEventBuilder.storage_error(
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action (e.g., one page render).
    Pass it through all subsequent operations.
    """
    return uuid4()
