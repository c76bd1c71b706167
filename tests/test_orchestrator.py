"""
Integration tests for the orchestrator flows, using in-memory storage.
"""

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

from finance_dashboard.audit import AuditLogger
from finance_dashboard.automations import ScheduleError
from finance_dashboard.config import AppSettings
from finance_dashboard.models.audit import AuditEventType
from finance_dashboard.models.automation import (
    DurationType,
    ScheduleFrequency,
    TriggerConfig,
)
from finance_dashboard.models.expense import (
    Expense,
    ExpenseEvent,
    ExpenseEventType,
    ExpenseFrequency,
    ExpenseType,
)
from finance_dashboard.models.income import IncomeAmount, IncomeEntry, IncomeSource
from finance_dashboard.models.net_worth import NetWorthEntry
from finance_dashboard.orchestrator import (
    AutomationScheduleFlow,
    DashboardFlow,
    ExpenseTrendFlow,
    IncomeFlow,
    NetWorthFlow,
    create_app_components,
)
from finance_dashboard.services.storage import (
    HistoryDataError,
    InMemoryAuditStorage,
    InMemoryExpenseStorage,
    InMemoryIncomeStorage,
    InMemoryNetWorthStorage,
    NotFoundError,
    StorageError,
)


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def make_expense(name="Rent", amount="1200", **kwargs):
    kwargs.setdefault("expense_type", ExpenseType.PERSONAL)
    return Expense(name=name, amount=Decimal(amount), **kwargs)


def make_event(expense_id, event_type, amount, changed_at, is_active=True):
    return ExpenseEvent(
        expense_id=expense_id,
        event_type=event_type,
        amount=Decimal(amount),
        frequency=ExpenseFrequency.MONTHLY,
        is_active=is_active,
        changed_at=changed_at,
    )


class BrokenHistoryStorage(InMemoryExpenseStorage):
    async def list_history(self, expense_id=None):
        raise HistoryDataError("Malformed expense history row 4: bad frequency")


class FailingAppendStorage(InMemoryExpenseStorage):
    async def append_history_event(self, event):
        raise StorageError("Failed to append history event: quota exceeded")


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def settings():
    return AppSettings(display_timezone="UTC", trend_window_months=12)


def audited_types(audit_storage):
    return [e.event_type for e in audit_storage._events]


class TestExpenseTrendFlow:
    """Tests for loading the trend, summary and recording changes."""

    @pytest.mark.asyncio
    async def test_load_trend(self, audit_storage, settings):
        rent = make_expense()
        storage = InMemoryExpenseStorage(
            expenses=[rent],
            history=[
                make_event(rent.id, ExpenseEventType.UPDATED, "1200", utc(2025, 2, 15)),
                make_event(rent.id, ExpenseEventType.CREATED, "1000", utc(2025, 1, 1)),
            ],
        )
        flow = ExpenseTrendFlow(storage, AuditLogger(audit_storage), settings)

        snapshots = await flow.load_trend()

        assert [(s.label, s.total) for s in snapshots] == [
            ("Jan 25", Decimal("1000")),
            ("Feb 25", Decimal("1200")),
        ]
        assert audited_types(audit_storage) == [
            AuditEventType.HISTORY_LOADED,
            AuditEventType.TIMELINE_RECONSTRUCTED,
        ]

    @pytest.mark.asyncio
    async def test_load_trend_uses_display_timezone(self, audit_storage):
        expense_id = uuid4()
        storage = InMemoryExpenseStorage(history=[
            make_event(expense_id, ExpenseEventType.CREATED, "10", utc(2025, 1, 31, 20, 0)),
        ])
        flow = ExpenseTrendFlow(
            storage,
            AuditLogger(audit_storage),
            AppSettings(display_timezone="Asia/Tokyo"),
        )
        snapshots = await flow.load_trend()
        assert snapshots[0].month == "2025-02"

    @pytest.mark.asyncio
    async def test_bad_history_is_audited_and_raised(self, audit_storage, settings):
        """Test that a malformed row stops the chart instead of being skipped."""
        flow = ExpenseTrendFlow(BrokenHistoryStorage(), AuditLogger(audit_storage), settings)

        with pytest.raises(HistoryDataError):
            await flow.load_trend()

        assert audited_types(audit_storage) == [AuditEventType.STORAGE_ERROR]

    @pytest.mark.asyncio
    async def test_load_summary(self, audit_storage, settings):
        rent = make_expense("Rent", "1200")
        hosting = make_expense("Hosting", "20", expense_type=ExpenseType.BUSINESS)
        storage = InMemoryExpenseStorage(
            expenses=[rent, hosting],
            history=[
                make_event(rent.id, ExpenseEventType.CREATED, "1000", utc(2025, 1, 1)),
                make_event(hosting.id, ExpenseEventType.CREATED, "20", utc(2025, 1, 2)),
                make_event(rent.id, ExpenseEventType.UPDATED, "1200", utc(2025, 2, 15)),
            ],
        )
        flow = ExpenseTrendFlow(storage, AuditLogger(audit_storage), settings)

        summary = await flow.load_summary(now=utc(2025, 3, 10))

        assert summary.current_month_cost == Decimal("1220")
        assert summary.previous_month_cost == Decimal("1020")
        assert summary.personal.monthly == Decimal("1200")
        assert summary.business.monthly == Decimal("20")
        assert summary.change_percentage == pytest.approx(19.6078, rel=1e-4)
        assert AuditEventType.SUMMARY_CALCULATED in audited_types(audit_storage)

    @pytest.mark.asyncio
    async def test_load_summary_in_january_compares_with_december(self, settings):
        rent = make_expense("Rent", "1200")
        storage = InMemoryExpenseStorage(
            expenses=[rent],
            history=[
                make_event(rent.id, ExpenseEventType.CREATED, "1000", utc(2024, 11, 20)),
                make_event(rent.id, ExpenseEventType.UPDATED, "1200", utc(2024, 12, 10)),
            ],
        )
        flow = ExpenseTrendFlow(storage, AuditLogger(), settings)

        summary = await flow.load_summary(now=utc(2025, 1, 10))

        assert summary.previous_month_cost == Decimal("1000")

    @pytest.mark.asyncio
    async def test_record_change_appends_history(self, audit_storage, settings):
        storage = InMemoryExpenseStorage()
        flow = ExpenseTrendFlow(storage, AuditLogger(audit_storage), settings)
        gym = make_expense("Gym", "50")

        await flow.record_change(gym, ExpenseEventType.CREATED, changed_at=utc(2025, 1, 1))
        event = await flow.record_change(
            gym, ExpenseEventType.PAUSED, changed_at=utc(2025, 2, 1),
        )

        assert event.is_active is False
        saved = await storage.get_expense(gym.id)
        assert saved.is_active is False
        history = await storage.list_history(expense_id=gym.id)
        assert [e.event_type for e in history] == [
            ExpenseEventType.CREATED,
            ExpenseEventType.PAUSED,
        ]
        assert [s.total for s in await flow.load_trend()] == [Decimal("50"), Decimal("0")]

    @pytest.mark.asyncio
    async def test_record_delete_soft_deletes(self, settings):
        rent = make_expense()
        storage = InMemoryExpenseStorage(expenses=[rent])
        flow = ExpenseTrendFlow(storage, AuditLogger(), settings)

        await flow.record_change(rent, ExpenseEventType.DELETED, changed_at=utc(2025, 2, 1))

        assert await flow.load_expenses() == []
        deleted = await storage.get_expense(rent.id)
        assert deleted.deleted_at == utc(2025, 2, 1)

    @pytest.mark.asyncio
    async def test_failed_append_leaves_row_unchanged(self, audit_storage, settings):
        """Test that the row is not saved when its history event could not be stored."""
        rent = make_expense()
        storage = FailingAppendStorage(expenses=[rent])
        flow = ExpenseTrendFlow(storage, AuditLogger(audit_storage), settings)

        with pytest.raises(StorageError):
            await flow.record_change(rent, ExpenseEventType.PAUSED, changed_at=utc(2025, 2, 1))

        saved = await storage.get_expense(rent.id)
        assert saved.is_active is True
        assert saved.updated_at == rent.updated_at
        assert await storage.list_history() == []
        assert audited_types(audit_storage) == [AuditEventType.STORAGE_ERROR]

    @pytest.mark.asyncio
    async def test_record_change_for_unknown_expense(self, settings):
        flow = ExpenseTrendFlow(InMemoryExpenseStorage(), AuditLogger(), settings)
        with pytest.raises(NotFoundError):
            await flow.record_change(make_expense(), ExpenseEventType.UPDATED)

    @pytest.mark.asyncio
    async def test_load_amount_history(self, settings):
        rent = make_expense()
        storage = InMemoryExpenseStorage(
            expenses=[rent],
            history=[
                make_event(rent.id, ExpenseEventType.CREATED, "1000", utc(2025, 1, 5)),
                make_event(rent.id, ExpenseEventType.PAUSED, "1000", utc(2025, 1, 9)),
                make_event(uuid4(), ExpenseEventType.CREATED, "5", utc(2025, 1, 6)),
            ],
        )
        flow = ExpenseTrendFlow(storage, AuditLogger(), settings)

        points = await flow.load_amount_history(rent.id)

        assert [(p.label, p.amount) for p in points] == [("Jan 5", Decimal("1000"))]

    @pytest.mark.asyncio
    async def test_amount_history_error_is_a_storage_error(self, audit_storage, settings):
        """Test that a bad history row surfaces as the StorageError the expense page catches."""
        flow = ExpenseTrendFlow(BrokenHistoryStorage(), AuditLogger(audit_storage), settings)

        with pytest.raises(StorageError, match="row 4"):
            await flow.load_amount_history(uuid4())

        assert audited_types(audit_storage) == [AuditEventType.STORAGE_ERROR]


def income_fixture():
    salary = IncomeSource(name="Salary", slug="salary", sort_order=0)
    freelance = IncomeSource(name="Freelance", slug="freelance", sort_order=1)
    dec = IncomeEntry(month="2024-12")
    jan = IncomeEntry(month="2025-01")
    feb = IncomeEntry(month="2025-02")
    amounts = [
        IncomeAmount(entry_id=dec.id, source_id=salary.id, amount=Decimal("5000")),
        IncomeAmount(entry_id=jan.id, source_id=salary.id, amount=Decimal("5000")),
        IncomeAmount(entry_id=jan.id, source_id=freelance.id, amount=Decimal("1200")),
        IncomeAmount(entry_id=feb.id, source_id=salary.id, amount=Decimal("5000")),
        IncomeAmount(entry_id=feb.id, source_id=freelance.id, amount=Decimal("-200")),
    ]
    storage = InMemoryIncomeStorage(
        sources=[freelance, salary],
        entries=[jan, dec, feb],
        amounts=amounts,
    )
    return storage, salary, freelance, (dec, jan, feb)


def net_worth_fixture():
    return InMemoryNetWorthStorage(entries=[
        NetWorthEntry(date=date(2025, 1, 31), amount=Decimal("104000")),
        NetWorthEntry(date=date(2024, 12, 31), amount=Decimal("100000")),
        NetWorthEntry(date=date(2025, 2, 28), amount=Decimal("102500")),
    ])


class BrokenIncomeStorage(InMemoryIncomeStorage):
    async def list_entries(self, include_deleted=False):
        raise StorageError("Failed to list income entries: quota exceeded")


class TestIncomeFlow:
    """Tests for the income overview and recording income."""

    @pytest.mark.asyncio
    async def test_load_overview_for_year(self, settings):
        storage, salary, freelance, (dec, jan, feb) = income_fixture()
        flow = IncomeFlow(storage, AuditLogger(), settings)

        overview = await flow.load_overview(year=2025)

        assert overview.years == [2025, 2024]
        assert [e.id for e in overview.entries] == [feb.id, jan.id]
        assert overview.entry_totals == {feb.id: Decimal("4800"), jan.id: Decimal("6200")}
        assert overview.stats.total == Decimal("11000")
        assert overview.stats.monthly_average == Decimal("5500.00")
        assert overview.stats.best_month == date(2025, 1, 1)
        assert [(b.name, b.total) for b in overview.breakdown] == [
            ("Salary", Decimal("10000")),
            ("Freelance", Decimal("1000")),
        ]
        assert [(p.label, p.total) for p in overview.trend] == [
            ("Jan 25", Decimal("6200")),
            ("Feb 25", Decimal("4800")),
        ]

    @pytest.mark.asyncio
    async def test_all_time_overview(self, settings):
        storage, *_ = income_fixture()
        flow = IncomeFlow(storage, AuditLogger(), settings)

        overview = await flow.load_overview()

        assert overview.year is None
        assert len(overview.entries) == 3
        assert overview.stats.total == Decimal("16000")

    @pytest.mark.asyncio
    async def test_load_trend_respects_window(self):
        storage, *_ = income_fixture()
        flow = IncomeFlow(storage, AuditLogger(), AppSettings(trend_window_months=2))

        trend = await flow.load_trend()

        assert [p.month for p in trend] == ["2025-01", "2025-02"]

    @pytest.mark.asyncio
    async def test_record_month_reuses_the_entry(self, audit_storage, settings):
        """Test that recording the same month twice updates one entry."""
        storage, salary, freelance, _ = income_fixture()
        flow = IncomeFlow(storage, AuditLogger(audit_storage), settings)

        first = await flow.record_month("2025-03", {salary.id: Decimal("5100")}, notes="raise")
        second = await flow.record_month(date(2025, 3, 20), {freelance.id: Decimal("300")})

        assert second.id == first.id
        assert second.notes == "raise"
        totals = await flow.load_month_totals()
        assert totals[0] == (date(2025, 3, 1), Decimal("5400"))
        assert audited_types(audit_storage) == [
            AuditEventType.INCOME_RECORDED,
            AuditEventType.INCOME_RECORDED,
        ]

    @pytest.mark.asyncio
    async def test_record_month_replaces_a_source_amount(self, settings):
        storage, salary, _, (_, jan, _) = income_fixture()
        flow = IncomeFlow(storage, AuditLogger(), settings)

        await flow.record_month("2025-01", {salary.id: Decimal("5500")})

        amounts = await storage.list_amounts(entry_id=jan.id)
        assert sorted(a.amount for a in amounts) == [Decimal("1200"), Decimal("5500")]

    @pytest.mark.asyncio
    async def test_record_month_for_unknown_source(self, settings):
        storage, *_ = income_fixture()
        flow = IncomeFlow(storage, AuditLogger(), settings)

        with pytest.raises(NotFoundError):
            await flow.record_month("2025-03", {uuid4(): Decimal("10")})
        assert len(await storage.list_entries()) == 3

    @pytest.mark.asyncio
    async def test_storage_error_is_audited_and_raised(self, audit_storage, settings):
        flow = IncomeFlow(BrokenIncomeStorage(), AuditLogger(audit_storage), settings)

        with pytest.raises(StorageError):
            await flow.load_overview()
        assert audited_types(audit_storage) == [AuditEventType.STORAGE_ERROR]


class TestNetWorthFlow:
    """Tests for the net worth overview."""

    @pytest.mark.asyncio
    async def test_year_overview_compares_with_prior_year(self, settings):
        """Test that January's change is measured against the previous December."""
        flow = NetWorthFlow(net_worth_fixture(), AuditLogger(), settings)

        overview = await flow.load_overview(year=2025)

        assert [e.date for e in overview.entries] == [date(2025, 2, 28), date(2025, 1, 31)]
        assert [(c.date, c.change) for c in overview.change_series] == [
            (date(2025, 1, 31), Decimal("4000")),
            (date(2025, 2, 28), Decimal("-1500")),
        ]
        assert overview.stats.high == Decimal("104000")
        assert overview.stats.low == Decimal("102500")
        assert overview.stats.average == Decimal("103250.00")
        assert overview.stats.total_change == Decimal("-1500")
        assert overview.current.amount == Decimal("102500")
        assert overview.previous.amount == Decimal("104000")
        assert overview.change_percentage == pytest.approx(-1.4423, rel=1e-3)

    @pytest.mark.asyncio
    async def test_record_entry(self, audit_storage, settings):
        storage = InMemoryNetWorthStorage()
        flow = NetWorthFlow(storage, AuditLogger(audit_storage), settings)

        entry = await flow.record_entry(date(2025, 3, 31), Decimal("-2500"), notes="car loan")

        assert await storage.get_entry(entry.id) == entry
        assert audited_types(audit_storage) == [AuditEventType.NET_WORTH_RECORDED]
        overview = await flow.load_overview()
        assert overview.changes == {entry.id: Decimal("0")}
        assert overview.change_series == []


class TestDashboardFlow:
    """Tests for the headline figures."""

    @pytest.mark.asyncio
    async def test_net_position_against_previous_month(self, settings):
        rent = make_expense("Rent", "1200")
        expense_storage = InMemoryExpenseStorage(
            expenses=[rent],
            history=[
                make_event(rent.id, ExpenseEventType.CREATED, "1000", utc(2025, 1, 1)),
                make_event(rent.id, ExpenseEventType.UPDATED, "1200", utc(2025, 2, 15)),
            ],
        )
        income_storage, *_ = income_fixture()
        flow = DashboardFlow(
            ExpenseTrendFlow(expense_storage, AuditLogger(), settings),
            IncomeFlow(income_storage, AuditLogger(), settings),
            NetWorthFlow(net_worth_fixture(), AuditLogger(), settings),
            settings,
        )

        summary = await flow.load_summary()

        assert summary.month == date(2025, 2, 1)
        assert summary.income_total == Decimal("4800")
        assert summary.previous_income_total == Decimal("6200")
        assert summary.monthly_expenses == Decimal("1200")
        assert summary.previous_monthly_expenses == Decimal("1000")
        assert summary.net_position == Decimal("3600")
        assert summary.previous_net_position == Decimal("5200")
        assert summary.current_net_worth == Decimal("102500")
        assert summary.previous_net_worth == Decimal("104000")

    @pytest.mark.asyncio
    async def test_month_without_income(self, settings):
        rent = make_expense("Rent", "1200")
        income_storage, *_ = income_fixture()
        flow = DashboardFlow(
            ExpenseTrendFlow(InMemoryExpenseStorage(expenses=[rent]), AuditLogger(), settings),
            IncomeFlow(income_storage, AuditLogger(), settings),
            NetWorthFlow(InMemoryNetWorthStorage(), AuditLogger(), settings),
            settings,
        )

        summary = await flow.load_summary(month=date(2025, 6, 15))

        assert summary.month == date(2025, 6, 1)
        assert summary.income_total == Decimal("0")
        assert summary.net_position == Decimal("-1200")
        assert summary.previous_monthly_expenses == Decimal("1200")


class TestAutomationScheduleFlow:
    """Tests for automation bookkeeping."""

    @pytest.mark.asyncio
    async def test_complete_run_schedules_next(self, audit_storage):
        flow = AutomationScheduleFlow(AuditLogger(audit_storage))
        config = TriggerConfig(frequency=ScheduleFrequency.DAILY, time="09:00")

        update = await flow.complete_run(uuid4(), config, utc(2025, 1, 15, 10, 0))

        assert update.next_run_at == utc(2025, 1, 16, 9, 0)
        assert audited_types(audit_storage) == [AuditEventType.AUTOMATION_SCHEDULED]

    @pytest.mark.asyncio
    async def test_exhausted_automation_does_not_run(self, audit_storage):
        flow = AutomationScheduleFlow(AuditLogger(audit_storage))
        config = TriggerConfig(
            frequency=ScheduleFrequency.DAILY,
            time="09:00",
            duration_type=DurationType.COUNT,
            run_count=1,
            runs_completed=1,
        )

        assert await flow.should_run(uuid4(), config, utc(2025, 1, 15, 10, 0)) is False
        assert audited_types(audit_storage) == [AuditEventType.AUTOMATION_DEACTIVATED]

    @pytest.mark.asyncio
    async def test_schedule_error_is_audited_and_raised(self, audit_storage):
        """Test that a naive run time is recorded as a system error."""
        flow = AutomationScheduleFlow(AuditLogger(audit_storage))
        config = TriggerConfig(frequency=ScheduleFrequency.DAILY, time="09:00")
        automation_id = uuid4()

        with pytest.raises(ScheduleError):
            await flow.complete_run(automation_id, config, datetime(2025, 1, 15, 10, 0))
        with pytest.raises(ScheduleError):
            await flow.should_run(automation_id, config, datetime(2025, 1, 15, 10, 0))

        assert audited_types(audit_storage) == [
            AuditEventType.SYSTEM_ERROR,
            AuditEventType.SYSTEM_ERROR,
        ]
        first = audit_storage._events[0]
        assert first.details == {
            "operation": "complete_run",
            "automation_id": str(automation_id),
        }


class TestAppComponents:
    """Tests for the component factory."""

    @pytest.mark.asyncio
    async def test_without_storage_uses_memory(self):
        (
            expense_flow,
            income_flow,
            net_worth_flow,
            dashboard_flow,
            automation_flow,
            sheets_client,
        ) = create_app_components(use_storage=False)
        assert sheets_client is None
        assert isinstance(automation_flow, AutomationScheduleFlow)
        assert await expense_flow.load_trend() == []
        assert (await income_flow.load_overview()).entries == []
        assert (await net_worth_flow.load_overview()).current is None

        summary = await dashboard_flow.load_summary()
        assert summary.month is None
        assert summary.net_position == Decimal("0")


class TestAuditLogger:
    """Tests for audit persistence failures."""

    @pytest.mark.asyncio
    async def test_storage_failure_does_not_raise(self):
        class FailingAuditStorage(InMemoryAuditStorage):
            async def append_event(self, event):
                raise StorageError("sheet unavailable")

        logger = AuditLogger(FailingAuditStorage())
        await logger.log_error("test", "boom")
