"""
Main Orchestrator for the Finance Dashboard

This module ties together storage, the timeline reconstructor, the totals
helpers and the audit logger, and defines the flows the UI calls:
1. Expense trend (history → replay → monthly snapshots)
2. Expense summary (expenses + history → totals and month-over-month change)
3. Recording expense changes (append to history)
4. Income and net worth pages, and the dashboard headline figures
5. Automation bookkeeping after a run

DESIGN DECISION: Every flow reads fresh data and recomputes. Nothing derived
is cached between renders, so the dashboard can never show a total that
disagrees with the stored history.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional, Union
from uuid import UUID

import structlog

from finance_dashboard import income, net_worth
from finance_dashboard.audit import AuditLogger, create_correlation_id
from finance_dashboard.automations import (
    ScheduleError,
    advance_after_run,
    has_exceeded_duration,
)
from finance_dashboard.config import AppSettings, get_settings
from finance_dashboard.expenses import (
    calculate_totals,
    category_totals,
    monthly_cost_as_of,
    totals_by_type,
)
from finance_dashboard.models.audit import AuditEventBuilder
from finance_dashboard.models.automation import ScheduleUpdate, TriggerConfig
from finance_dashboard.models.dashboard import DashboardSummary
from finance_dashboard.models.expense import (
    AmountHistoryPoint,
    Expense,
    ExpenseEvent,
    ExpenseEventType,
    ExpenseSummary,
    MonthlySnapshot,
)
from finance_dashboard.models.income import (
    IncomeAmount,
    IncomeEntry,
    IncomeMonthPoint,
    IncomeOverview,
    IncomeSource,
)
from finance_dashboard.models.net_worth import (
    NetWorthEntry,
    NetWorthOverview,
    NetWorthPoint,
)
from finance_dashboard.services.storage import (
    ExpenseStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
    GoogleSheetsIncomeStorage,
    GoogleSheetsNetWorthStorage,
    InMemoryExpenseStorage,
    InMemoryIncomeStorage,
    InMemoryNetWorthStorage,
    IncomeStorageInterface,
    NetWorthStorageInterface,
    NotFoundError,
    StorageError,
)
from finance_dashboard.timeline import ExpenseTimelineReconstructor, amount_history
from finance_dashboard.utils import calculate_percentage_change


logger = structlog.get_logger(__name__)


class ExpenseTrendFlow:
    """
    Orchestrates the expense pages.

    Flow for the trend chart:
    1. Load → all history events from storage
    2. Replay → monthly snapshots (configured window and timezone)
    3. Audit → record what was shown

    Storage and data errors are audited and re-raised. The UI shows an
    error instead of a partial chart.
    """

    def __init__(
        self,
        storage: ExpenseStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger or AuditLogger()
        self._settings = settings or get_settings().app
        self._reconstructor = ExpenseTimelineReconstructor(
            window=self._settings.trend_window_months,
            timezone=self._settings.timezone,
        )

    async def _load_history(
        self,
        correlation_id: UUID,
        expense_id: Optional[UUID] = None,
    ) -> list[ExpenseEvent]:
        try:
            history = await self._storage.list_history(expense_id=expense_id)
        except StorageError as e:
            await self._audit_logger.log_storage_error(
                operation="list_history",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise

        await self._audit_logger.log_history_loaded(
            event_count=len(history),
            expense_id=expense_id,
            correlation_id=correlation_id,
        )
        return history

    async def load_expenses(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> list[Expense]:
        """Current, non-deleted expense rows ordered by name."""
        correlation_id = correlation_id or create_correlation_id()
        try:
            return await self._storage.list_expenses()
        except StorageError as e:
            await self._audit_logger.log_storage_error(
                operation="list_expenses",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise

    async def load_trend(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> list[MonthlySnapshot]:
        """
        Monthly cost of active expenses over the most recent months.

        Returns:
            Snapshots oldest first; empty if there is no history
        """
        correlation_id = correlation_id or create_correlation_id()
        history = await self._load_history(correlation_id)

        snapshots = self._reconstructor.reconstruct(history)

        await self._audit_logger.log_timeline_reconstructed(
            event_count=len(history),
            months=[s.month for s in snapshots],
            correlation_id=correlation_id,
        )
        return snapshots

    async def load_amount_history(
        self,
        expense_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> list[AmountHistoryPoint]:
        """Amount-over-time points for one expense's detail page."""
        correlation_id = correlation_id or create_correlation_id()
        history = await self._load_history(correlation_id, expense_id=expense_id)
        return amount_history(history, timezone=self._settings.timezone)

    async def load_summary(
        self,
        now: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ExpenseSummary:
        """
        Totals for the expenses overview.

        The previous month's cost is the monthly cost as it stood on the
        first day of the previous month, rebuilt from history.
        """
        correlation_id = correlation_id or create_correlation_id()
        now = now or datetime.now(timezone.utc)

        expenses = await self.load_expenses(correlation_id)
        history = await self._load_history(correlation_id)

        local_now = now.astimezone(self._settings.timezone)
        year, month = (local_now.year - 1, 12) if local_now.month == 1 else (
            local_now.year, local_now.month - 1
        )
        previous_month_start = datetime(year, month, 1, tzinfo=self._settings.timezone)

        current_cost = calculate_totals(expenses).monthly
        previous_cost = monthly_cost_as_of(expenses, history, previous_month_start)
        by_type = totals_by_type(expenses)

        summary = ExpenseSummary(
            all=by_type["all"],
            personal=by_type["personal"],
            business=by_type["business"],
            by_category=category_totals(expenses),
            current_month_cost=current_cost,
            previous_month_cost=previous_cost,
            change_percentage=calculate_percentage_change(current_cost, previous_cost),
        )

        await self._audit_logger.log_summary_calculated(
            expense_count=len(expenses),
            monthly_total=str(current_cost),
            correlation_id=correlation_id,
        )
        return summary

    async def monthly_cost(
        self,
        as_of: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Decimal:
        """
        Monthly cost of active expenses, now or as it stood at `as_of`.

        A past cost is rebuilt from history.
        """
        correlation_id = correlation_id or create_correlation_id()
        expenses = await self.load_expenses(correlation_id)
        if as_of is None:
            return calculate_totals(expenses).monthly
        history = await self._load_history(correlation_id)
        return monthly_cost_as_of(expenses, history, as_of)

    async def record_change(
        self,
        expense: Expense,
        event_type: ExpenseEventType,
        changed_at: Optional[datetime] = None,
        notes: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ExpenseEvent:
        """
        Append the history event for a change, then save the expense row.

        For `paused` / `activated` / `deleted` the expense row is updated
        to match. The row is only written once the event is stored, so a
        failed append leaves the row as it was.

        Raises:
            NotFoundError: If a non-`created` change targets an unknown expense
            StorageError: If either write fails
        """
        correlation_id = correlation_id or create_correlation_id()
        changed_at = changed_at or datetime.now(timezone.utc)

        if event_type != ExpenseEventType.CREATED:
            if await self._storage.get_expense(expense.id) is None:
                raise NotFoundError(f"Expense not found: {expense.id}")

        update: dict = {"updated_at": changed_at}
        if event_type == ExpenseEventType.PAUSED:
            update["is_active"] = False
        elif event_type == ExpenseEventType.ACTIVATED:
            update["is_active"] = True
        elif event_type == ExpenseEventType.DELETED:
            update["is_active"] = False
            update["deleted_at"] = changed_at
        expense = expense.model_copy(update=update)

        event = ExpenseEvent(
            expense_id=expense.id,
            event_type=event_type,
            amount=expense.amount,
            frequency=expense.frequency,
            is_active=expense.is_active,
            changed_at=changed_at,
            notes=notes,
        )

        # History first: a failed append must leave the row untouched
        try:
            await self._storage.append_history_event(event)
            await self._storage.save_expense(expense)
        except StorageError as e:
            await self._audit_logger.log_storage_error(
                operation="record_change",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise

        await self._audit_logger.log_history_event_appended(
            expense_id=expense.id,
            event_type=event_type.value,
            amount=str(expense.amount),
            correlation_id=correlation_id,
        )
        return event


class IncomeFlow:
    """
    Orchestrates the income page.

    Flow for the overview:
    1. Load → sources, monthly entries and their amounts
    2. Filter → the selected year (or all time)
    3. Aggregate → totals per entry, stats, source breakdown, trend

    Storage errors are audited and re-raised.
    """

    def __init__(
        self,
        storage: IncomeStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger or AuditLogger()
        self._settings = settings or get_settings().app

    async def _load_all(
        self,
        correlation_id: UUID,
    ) -> tuple[list[IncomeSource], list[IncomeEntry], list[IncomeAmount]]:
        try:
            sources = await self._storage.list_sources()
            entries = await self._storage.list_entries()
            amounts = await self._storage.list_amounts()
        except StorageError as e:
            await self._audit_logger.log_storage_error(
                operation="list_income",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise
        return sources, entries, amounts

    async def load_sources(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> list[IncomeSource]:
        sources, _, _ = await self._load_all(correlation_id or create_correlation_id())
        return sources

    async def load_overview(
        self,
        year: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> IncomeOverview:
        """
        Income page figures for `year`, or for all time when `year` is None.

        `years` always lists every year with entries.
        """
        correlation_id = correlation_id or create_correlation_id()
        sources, entries, amounts = await self._load_all(correlation_id)

        selected = income.filter_by_year(entries, year)
        return IncomeOverview(
            year=year,
            years=income.available_years(entries),
            entries=selected,
            entry_totals=income.entry_totals(selected, amounts),
            sources=income.sources_with_data(sources, selected, amounts),
            stats=income.income_stats(selected, amounts),
            breakdown=income.source_breakdown(sources, selected, amounts),
            trend=income.income_trend(selected, sources, amounts),
        )

    async def load_trend(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> list[IncomeMonthPoint]:
        """Income for the most recent months in the trend window, oldest first."""
        sources, entries, amounts = await self._load_all(correlation_id or create_correlation_id())
        return income.income_trend(
            entries, sources, amounts, limit=self._settings.trend_window_months,
        )

    async def load_month_totals(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> list[tuple[date, Decimal]]:
        """(month, total) for every entry, newest month first."""
        _, entries, amounts = await self._load_all(correlation_id or create_correlation_id())
        ordered = income.filter_by_year(entries)
        totals = income.entry_totals(ordered, amounts)
        return [(entry.month, totals[entry.id]) for entry in ordered]

    async def save_source(
        self,
        source: IncomeSource,
        correlation_id: Optional[UUID] = None,
    ) -> IncomeSource:
        """Add or update an income source."""
        correlation_id = correlation_id or create_correlation_id()
        try:
            await self._storage.save_source(source)
        except StorageError as e:
            await self._audit_logger.log_storage_error(
                operation="save_income_source",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise
        return source

    async def record_month(
        self,
        month: Union[date, str],
        amounts: dict[UUID, Decimal],
        notes: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> IncomeEntry:
        """
        Record what each source paid in a month.

        Reuses the month's existing entry if there is one, replacing the
        amounts given and keeping the others. Notes are only replaced when
        passed.

        Raises:
            NotFoundError: If an amount names an unknown source
            StorageError: If a write fails
        """
        correlation_id = correlation_id or create_correlation_id()
        now = datetime.now(timezone.utc)
        target = IncomeEntry(month=month)

        sources, entries, _ = await self._load_all(correlation_id)
        known = {source.id for source in sources}
        unknown = [str(source_id) for source_id in amounts if source_id not in known]
        if unknown:
            raise NotFoundError(f"Income source not found: {', '.join(unknown)}")

        entry = next((e for e in entries if e.month == target.month), None)
        if entry is None:
            entry = target.model_copy(update={"notes": notes})
        else:
            update: dict = {"updated_at": now}
            if notes is not None:
                update["notes"] = notes
            entry = entry.model_copy(update=update)

        try:
            await self._storage.save_entry(entry)
            for source_id, value in amounts.items():
                await self._storage.save_amount(IncomeAmount(
                    entry_id=entry.id,
                    source_id=source_id,
                    amount=value,
                    updated_at=now,
                ))
            stored = await self._storage.list_amounts(entry_id=entry.id)
        except StorageError as e:
            await self._audit_logger.log_storage_error(
                operation="record_income",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise

        await self._audit_logger.log_income_recorded(
            entry_id=entry.id,
            month=entry.month_key,
            total=str(sum((a.amount for a in stored), Decimal("0"))),
            source_count=len(stored),
            correlation_id=correlation_id,
        )
        return entry


class NetWorthFlow:
    """Orchestrates the net worth page. Storage errors are audited and re-raised."""

    def __init__(
        self,
        storage: NetWorthStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger or AuditLogger()
        self._settings = settings or get_settings().app

    async def _load_entries(self, correlation_id: UUID) -> list[NetWorthEntry]:
        try:
            return await self._storage.list_entries()
        except StorageError as e:
            await self._audit_logger.log_storage_error(
                operation="list_net_worth",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise

    async def load_overview(
        self,
        year: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> NetWorthOverview:
        """
        Net worth page figures for `year`, or for all time when `year` is None.

        Changes and the current/previous snapshots always come from the full
        series.
        """
        correlation_id = correlation_id or create_correlation_id()
        entries = await self._load_entries(correlation_id)

        selected = net_worth.filter_by_year(entries, year)
        current, previous = net_worth.latest_two(entries)
        return NetWorthOverview(
            year=year,
            years=net_worth.available_years(entries),
            entries=selected,
            changes=net_worth.changes_from_previous(entries),
            stats=net_worth.net_worth_stats(selected),
            change_series=net_worth.change_series(selected, entries),
            trend=net_worth.net_worth_trend(selected),
            current=current,
            previous=previous,
            change_percentage=calculate_percentage_change(
                current.amount if current else 0,
                previous.amount if previous else 0,
            ),
        )

    async def load_trend(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> list[NetWorthPoint]:
        """The most recent snapshots in the trend window, oldest first."""
        entries = await self._load_entries(correlation_id or create_correlation_id())
        return net_worth.net_worth_trend(entries, limit=self._settings.trend_window_months)

    async def load_latest(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[NetWorthEntry], Optional[NetWorthEntry]]:
        entries = await self._load_entries(correlation_id or create_correlation_id())
        return net_worth.latest_two(entries)

    async def record_entry(
        self,
        entry_date: date,
        amount: Decimal,
        notes: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> NetWorthEntry:
        """Store a new snapshot."""
        correlation_id = correlation_id or create_correlation_id()
        entry = NetWorthEntry(date=entry_date, amount=amount, notes=notes)

        try:
            await self._storage.save_entry(entry)
        except StorageError as e:
            await self._audit_logger.log_storage_error(
                operation="record_net_worth",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise

        await self._audit_logger.log_net_worth_recorded(
            entry_id=entry.id,
            entry_date=entry.date.isoformat(),
            amount=str(entry.amount),
            correlation_id=correlation_id,
        )
        return entry


class DashboardFlow:
    """
    Headline figures across expenses, income and net worth.

    Net position compares a month's income with the monthly cost of
    recurring expenses. For the current month that is today's cost; for the
    previous income month it is the cost rebuilt from history as of the
    first day of that month.
    """

    def __init__(
        self,
        expense_flow: ExpenseTrendFlow,
        income_flow: IncomeFlow,
        net_worth_flow: NetWorthFlow,
        settings: Optional[AppSettings] = None,
    ):
        self._expense_flow = expense_flow
        self._income_flow = income_flow
        self._net_worth_flow = net_worth_flow
        self._settings = settings or get_settings().app

    async def load_summary(
        self,
        month: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> DashboardSummary:
        """
        Dashboard figures for an income month (the latest one by default).

        A month with no income entry counts as zero income and has no
        previous month to compare with.
        """
        correlation_id = correlation_id or create_correlation_id()

        month_totals = await self._income_flow.load_month_totals(correlation_id)
        months = [m for m, _ in month_totals]
        if month is None:
            month = months[0] if months else None
        elif month.day != 1:
            month = month.replace(day=1)

        income_total = Decimal("0")
        previous_month = None
        previous_income = Decimal("0")
        if month in months:
            index = months.index(month)
            income_total = month_totals[index][1]
            if index + 1 < len(month_totals):
                previous_month, previous_income = month_totals[index + 1]

        monthly_expenses = await self._expense_flow.monthly_cost(
            correlation_id=correlation_id,
        )
        previous_expenses = monthly_expenses
        if previous_month is not None:
            previous_expenses = await self._expense_flow.monthly_cost(
                as_of=datetime(
                    previous_month.year, previous_month.month, 1,
                    tzinfo=self._settings.timezone,
                ),
                correlation_id=correlation_id,
            )

        current, previous = await self._net_worth_flow.load_latest(correlation_id)
        current_net_worth = current.amount if current else Decimal("0")
        previous_net_worth = previous.amount if previous else Decimal("0")

        summary = DashboardSummary(
            month=month,
            months=months,
            income_total=income_total,
            previous_income_total=previous_income,
            income_change_percentage=calculate_percentage_change(income_total, previous_income),
            monthly_expenses=monthly_expenses,
            previous_monthly_expenses=previous_expenses,
            net_position=income.net_position(income_total, monthly_expenses),
            previous_net_position=income.net_position(previous_income, previous_expenses),
            current_net_worth=current_net_worth,
            previous_net_worth=previous_net_worth,
            net_worth_change_percentage=calculate_percentage_change(
                current_net_worth, previous_net_worth,
            ),
        )
        logger.info(
            "dashboard_summary_calculated",
            month=month.isoformat() if month else None,
            net_position=str(summary.net_position),
            correlation_id=str(correlation_id),
        )
        return summary


class AutomationScheduleFlow:
    """
    Bookkeeping for scheduled automations.

    Decides whether a due automation may run and what to store after it
    has run. Sending emails/notifications is not part of this flow.
    Schedule errors are audited as system errors and re-raised.
    """

    def __init__(self, audit_logger: Optional[AuditLogger] = None):
        self._audit_logger = audit_logger or AuditLogger()

    async def _schedule_failed(
        self,
        operation: str,
        automation_id: UUID,
        error: ScheduleError,
    ) -> None:
        await self._audit_logger.log_error(
            error_type="schedule_error",
            error_message=str(error),
            details={"operation": operation, "automation_id": str(automation_id)},
        )

    async def should_run(
        self,
        automation_id: UUID,
        config: TriggerConfig,
        now: datetime,
    ) -> bool:
        """False (and audited) when the automation has used up its runs."""
        try:
            exceeded = has_exceeded_duration(config, now)
        except ScheduleError as e:
            await self._schedule_failed("should_run", automation_id, e)
            raise

        if exceeded:
            await self._audit_logger.log(AuditEventBuilder.automation_deactivated(
                automation_id=automation_id,
                reason="duration limit exceeded",
            ))
            return False
        return True

    async def complete_run(
        self,
        automation_id: UUID,
        config: TriggerConfig,
        now: datetime,
    ) -> ScheduleUpdate:
        """New schedule state after a run."""
        try:
            update = advance_after_run(config, now)
        except ScheduleError as e:
            await self._schedule_failed("complete_run", automation_id, e)
            raise

        if update.is_active and update.next_run_at is not None:
            await self._audit_logger.log(AuditEventBuilder.automation_scheduled(
                automation_id=automation_id,
                next_run_at=update.next_run_at.isoformat(),
                runs_completed=update.trigger_config.runs_completed,
            ))
        else:
            await self._audit_logger.log(AuditEventBuilder.automation_deactivated(
                automation_id=automation_id,
                reason="run limit reached",
            ))
        return update


def create_app_components(
    use_storage: bool = True,
) -> tuple[
    ExpenseTrendFlow,
    IncomeFlow,
    NetWorthFlow,
    DashboardFlow,
    AutomationScheduleFlow,
    Optional[GoogleSheetsClient],
]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False to run on empty in-memory storage.

    Returns:
        (expense_flow, income_flow, net_worth_flow, dashboard_flow,
        automation_flow, sheets_client)
    """
    sheets_client = None
    expense_storage: ExpenseStorageInterface = InMemoryExpenseStorage()
    income_storage: IncomeStorageInterface = InMemoryIncomeStorage()
    net_worth_storage: NetWorthStorageInterface = InMemoryNetWorthStorage()
    audit_logger = AuditLogger()  # Local-only logging

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            expense_storage = GoogleSheetsExpenseStorage(sheets_client)
            income_storage = GoogleSheetsIncomeStorage(sheets_client)
            net_worth_storage = GoogleSheetsNetWorthStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            expense_storage = InMemoryExpenseStorage()
            income_storage = InMemoryIncomeStorage()
            net_worth_storage = InMemoryNetWorthStorage()
            audit_logger = AuditLogger()

    expense_flow = ExpenseTrendFlow(
        storage=expense_storage,
        audit_logger=audit_logger,
    )
    income_flow = IncomeFlow(storage=income_storage, audit_logger=audit_logger)
    net_worth_flow = NetWorthFlow(storage=net_worth_storage, audit_logger=audit_logger)
    dashboard_flow = DashboardFlow(expense_flow, income_flow, net_worth_flow)
    automation_flow = AutomationScheduleFlow(audit_logger=audit_logger)

    return (
        expense_flow,
        income_flow,
        net_worth_flow,
        dashboard_flow,
        automation_flow,
        sheets_client,
    )
