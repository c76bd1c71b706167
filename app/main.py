"""
Streamlit Frontend for the Finance Dashboard

Shows what recurring expenses cost per month, how that has changed over
time, and how it breaks down by type and category. Income and net worth
are tracked alongside, and the dashboard sets income against expenses.

DESIGN PRINCIPLES:
1. Figures are always recomputed from storage on each render
2. A storage or data error replaces the chart; it is never half drawn
3. Privacy mode masks every figure until revealed
"""

import asyncio
from datetime import date
from decimal import Decimal

import streamlit as st
from pydantic import ValidationError

from finance_dashboard.audit import configure_logging, create_correlation_id
from finance_dashboard.config import get_settings, validate_all_settings
from finance_dashboard.models.expense import ExpenseEventType, ExpenseSummary
from finance_dashboard.models.income import IncomeSource
from finance_dashboard.orchestrator import (
    DashboardFlow,
    ExpenseTrendFlow,
    IncomeFlow,
    NetWorthFlow,
    create_app_components,
)
from finance_dashboard.services.storage import StorageError
from finance_dashboard.utils import (
    PRIVACY_STATE_KEY,
    DisplayPreferences,
    format_axis_tick,
    format_date,
    format_masked_currency,
    format_month,
    format_percentage,
    mask_value,
    session_preferences,
    truncate,
)


# Page configuration
st.set_page_config(
    page_title="Finance Dashboard",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .error-box {
        padding: 20px;
        background-color: #f8d7da;
        border-radius: 10px;
        border-left: 5px solid #dc3545;
        margin: 10px 0;
    }
    .info-box {
        padding: 20px;
        background-color: #cce5ff;
        border-radius: 10px;
        border-left: 5px solid #004085;
        margin: 10px 0;
    }
</style>
""", unsafe_allow_html=True)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    configure_logging(debug=get_settings().app.debug_mode)
    return create_app_components(use_storage=True)


def get_preferences() -> DisplayPreferences:
    return session_preferences(st.session_state, get_settings().app.privacy_hidden)


def main():
    """Main application entry point."""
    expense_flow, income_flow, net_worth_flow, dashboard_flow, _, _ = get_components()

    st.sidebar.title("💰 Finance Dashboard")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        [
            "🏠 Dashboard",
            "📈 Expense Trend",
            "📋 Expenses",
            "💵 Income",
            "🏦 Net Worth",
            "⚙️ Settings",
        ],
        index=0,
    )

    st.sidebar.markdown("---")
    get_preferences()  # seeds the toggle from PRIVACY_HIDDEN on first render
    st.sidebar.toggle("🙈 Hide amounts", key=PRIVACY_STATE_KEY)
    preferences = get_preferences()

    if page == "🏠 Dashboard":
        render_dashboard_page(dashboard_flow, income_flow, net_worth_flow, preferences)
    elif page == "📈 Expense Trend":
        render_trend_page(expense_flow, preferences)
    elif page == "📋 Expenses":
        render_expenses_page(expense_flow, preferences)
    elif page == "💵 Income":
        render_income_page(income_flow, preferences)
    elif page == "🏦 Net Worth":
        render_net_worth_page(net_worth_flow, preferences)
    elif page == "⚙️ Settings":
        render_settings_page()


def render_error(title: str, message: str):
    st.markdown(f"""
    <div class="error-box">
        <h4>{title}</h4>
        <p>{message}</p>
    </div>
    """, unsafe_allow_html=True)


def render_summary_metrics(summary: ExpenseSummary, preferences: DisplayPreferences):
    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric(
            "Monthly cost",
            format_masked_currency(summary.current_month_cost, preferences),
            delta=mask_value(format_percentage(summary.change_percentage), preferences),
            delta_color="inverse",
        )
    with col2:
        st.metric(
            "Personal",
            format_masked_currency(summary.personal.monthly, preferences),
        )
    with col3:
        st.metric(
            "Business",
            format_masked_currency(summary.business.monthly, preferences),
        )


def render_trend_page(expense_flow: ExpenseTrendFlow, preferences: DisplayPreferences):
    """Render the monthly expense trend."""
    st.title("📈 Expense Trend")
    st.markdown("Total monthly cost of your active recurring expenses.")

    correlation_id = create_correlation_id()
    try:
        summary = run_async(expense_flow.load_summary(correlation_id=correlation_id))
        snapshots = run_async(expense_flow.load_trend(correlation_id=correlation_id))
    except StorageError as e:
        render_error("❌ Could not load expense history", str(e))
        st.stop()

    render_summary_metrics(summary, preferences)
    st.markdown("---")

    if not snapshots:
        st.markdown("""
        <div class="info-box">
            <h4>📋 No history yet</h4>
            <p>The trend appears once you add your first expense.</p>
        </div>
        """, unsafe_allow_html=True)
        return

    chart_data = {
        "Month": [s.label for s in snapshots],
        "Monthly cost": [float(s.total) for s in snapshots],
    }
    st.area_chart(chart_data, x="Month", y="Monthly cost")

    with st.expander("🔍 Monthly figures"):
        for snapshot in snapshots:
            st.markdown(
                f"**{snapshot.label}**: "
                f"{format_axis_tick(snapshot.total, preferences)} "
                f"({format_masked_currency(snapshot.total, preferences)})"
            )


def render_expenses_page(expense_flow: ExpenseTrendFlow, preferences: DisplayPreferences):
    """Render the expense list with per-category totals."""
    st.title("📋 Expenses")

    correlation_id = create_correlation_id()
    try:
        summary = run_async(expense_flow.load_summary(correlation_id=correlation_id))
        expenses = run_async(expense_flow.load_expenses(correlation_id=correlation_id))
    except StorageError as e:
        render_error("❌ Could not load expenses", str(e))
        st.stop()

    render_summary_metrics(summary, preferences)

    if summary.by_category:
        st.markdown("### By category")
        for category, total in sorted(
            summary.by_category.items(), key=lambda item: item[1], reverse=True
        ):
            st.markdown(
                f"- {category.label}: "
                f"{format_masked_currency(total, preferences, compact=True)}"
            )

    st.markdown("---")

    if not expenses:
        st.info("📋 No expenses yet.")
        return

    for expense in expenses:
        status = "" if expense.is_active else " (paused)"
        with st.expander(f"{expense.name}{status}"):
            st.markdown(
                f"**Amount:** {format_masked_currency(expense.amount, preferences)} "
                f"{expense.frequency.value}"
            )
            st.markdown(
                f"**Monthly:** {format_masked_currency(expense.monthly_amount, preferences)}"
            )
            st.markdown(f"**Since:** {format_date(expense.effective_date)}")

            try:
                points = run_async(expense_flow.load_amount_history(expense.id))
            except StorageError as e:
                render_error("❌ Could not load amount history", str(e))
                points = []
            if len(points) > 1:
                st.line_chart(
                    {
                        "Date": [p.label for p in points],
                        "Amount": [float(p.amount) for p in points],
                    },
                    x="Date",
                    y="Amount",
                )

            action = ExpenseEventType.PAUSED if expense.is_active else ExpenseEventType.ACTIVATED
            if st.button(action.value.capitalize(), key=f"toggle-{expense.id}"):
                try:
                    run_async(expense_flow.record_change(expense, action))
                    st.rerun()
                except StorageError as e:
                    st.error(f"Failed to save: {e}")


def render_dashboard_page(
    dashboard_flow: DashboardFlow,
    income_flow: IncomeFlow,
    net_worth_flow: NetWorthFlow,
    preferences: DisplayPreferences,
):
    """Render income against expenses and the latest net worth."""
    st.title("🏠 Dashboard")

    correlation_id = create_correlation_id()
    try:
        summary = run_async(dashboard_flow.load_summary(correlation_id=correlation_id))
        if len(summary.months) > 1:
            month = st.selectbox("Month", summary.months, format_func=format_month)
            if month != summary.month:
                summary = run_async(
                    dashboard_flow.load_summary(month=month, correlation_id=correlation_id)
                )
        income_trend = run_async(income_flow.load_trend(correlation_id=correlation_id))
        net_worth_trend = run_async(net_worth_flow.load_trend(correlation_id=correlation_id))
    except StorageError as e:
        render_error("❌ Could not load dashboard", str(e))
        st.stop()

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        st.metric(
            "Monthly income",
            format_masked_currency(summary.income_total, preferences),
            delta=mask_value(format_percentage(summary.income_change_percentage), preferences),
        )
    with col2:
        st.metric(
            "Monthly expenses",
            format_masked_currency(summary.monthly_expenses, preferences),
        )
    with col3:
        st.metric(
            "Net position",
            format_masked_currency(summary.net_position, preferences, show_sign=True),
            delta=format_masked_currency(
                summary.net_position - summary.previous_net_position,
                preferences,
                show_sign=True,
            ),
        )
    with col4:
        st.metric(
            "Net worth",
            format_masked_currency(summary.current_net_worth, preferences),
            delta=mask_value(format_percentage(summary.net_worth_change_percentage), preferences),
        )

    st.markdown("---")
    left, right = st.columns(2)
    with left:
        st.markdown("### Income trend")
        if income_trend:
            st.bar_chart(
                {
                    "Month": [p.label for p in income_trend],
                    "Income": [float(p.total) for p in income_trend],
                },
                x="Month",
                y="Income",
            )
        else:
            st.info("📋 No income recorded yet.")
    with right:
        st.markdown("### Net worth")
        if net_worth_trend:
            st.line_chart(
                {
                    "Date": [p.label for p in net_worth_trend],
                    "Net worth": [float(p.amount) for p in net_worth_trend],
                },
                x="Date",
                y="Net worth",
            )
        else:
            st.info("📋 No net worth snapshots yet.")


def render_income_page(income_flow: IncomeFlow, preferences: DisplayPreferences):
    """Render monthly income with per-source breakdown."""
    st.title("💵 Income")

    correlation_id = create_correlation_id()
    try:
        overview = run_async(income_flow.load_overview(correlation_id=correlation_id))
        sources = run_async(income_flow.load_sources(correlation_id=correlation_id))
        if overview.years:
            # Most recent year by default
            choice = st.radio(
                "Year",
                [str(y) for y in overview.years] + ["All time"],
                horizontal=True,
            )
            if choice != "All time":
                overview = run_async(
                    income_flow.load_overview(year=int(choice), correlation_id=correlation_id)
                )
    except StorageError as e:
        render_error("❌ Could not load income", str(e))
        st.stop()

    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("Total", format_masked_currency(overview.stats.total, preferences))
    with col2:
        st.metric(
            "Monthly average",
            format_masked_currency(overview.stats.monthly_average, preferences),
        )
    with col3:
        best = format_month(overview.stats.best_month) if overview.stats.best_month else "-"
        st.metric(
            f"Best month ({best})",
            format_masked_currency(overview.stats.best_month_total, preferences),
        )

    if len(overview.trend) >= 3 and overview.sources:
        st.bar_chart(
            {
                "Month": [p.label for p in overview.trend],
                **{
                    source.name: [float(p.by_source.get(source.slug, 0)) for p in overview.trend]
                    for source in overview.sources
                },
            },
            x="Month",
            y=[source.name for source in overview.sources],
        )

    if overview.breakdown:
        st.markdown("### By source")
        for item in overview.breakdown:
            st.markdown(
                f"- {item.name}: "
                f"{format_masked_currency(item.total, preferences, compact=True)}"
            )

    st.markdown("---")
    for entry in overview.entries:
        total = overview.entry_totals.get(entry.id, 0)
        st.markdown(
            f"**{format_month(entry.month)}**: "
            f"{format_masked_currency(total, preferences)}"
            + (f" ({truncate(entry.notes, 60)})" if entry.notes else "")
        )

    if not sources:
        st.info("Add an income source below before recording income.")
    else:
        with st.form("record_income"):
            st.markdown("### Record a month")
            month = st.date_input("Month", value=date.today().replace(day=1))
            values = {
                source.id: st.number_input(source.name, value=0.0, step=100.0, key=f"inc-{source.id}")
                for source in sources if source.is_active
            }
            notes = st.text_input("Notes")
            if st.form_submit_button("Save"):
                try:
                    run_async(income_flow.record_month(
                        month,
                        {k: Decimal(str(v)) for k, v in values.items() if v},
                        notes=notes or None,
                    ))
                    st.rerun()
                except StorageError as e:
                    st.error(f"Failed to save: {e}")

    with st.form("add_source"):
        st.markdown("### Add a source")
        name = st.text_input("Name")
        slug = st.text_input("Chart key (lowercase, dashes)")
        if st.form_submit_button("Add source"):
            try:
                source = IncomeSource(name=name, slug=slug, sort_order=len(sources))
            except ValidationError as e:
                st.error(f"Invalid source: {e.errors()[0]['msg']}")
            else:
                try:
                    run_async(income_flow.save_source(source))
                    st.rerun()
                except StorageError as e:
                    st.error(f"Failed to save: {e}")


def render_net_worth_page(net_worth_flow: NetWorthFlow, preferences: DisplayPreferences):
    """Render net worth snapshots and month-to-month changes."""
    st.title("🏦 Net Worth")

    correlation_id = create_correlation_id()
    try:
        overview = run_async(net_worth_flow.load_overview(correlation_id=correlation_id))
        if overview.years:
            choice = st.radio(
                "Year",
                ["All time"] + [str(y) for y in overview.years],
                horizontal=True,
            )
            if choice != "All time":
                overview = run_async(
                    net_worth_flow.load_overview(year=int(choice), correlation_id=correlation_id)
                )
    except StorageError as e:
        render_error("❌ Could not load net worth", str(e))
        st.stop()

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        current = overview.current.amount if overview.current else 0
        st.metric(
            "Current",
            format_masked_currency(current, preferences),
            delta=mask_value(format_percentage(overview.change_percentage), preferences),
        )
    with col2:
        st.metric("High", format_masked_currency(overview.stats.high, preferences))
    with col3:
        st.metric("Low", format_masked_currency(overview.stats.low, preferences))
    with col4:
        st.metric(
            "Change",
            format_masked_currency(overview.stats.total_change, preferences, show_sign=True),
        )

    if len(overview.trend) >= 2:
        st.line_chart(
            {
                "Date": [p.label for p in overview.trend],
                "Net worth": [float(p.amount) for p in overview.trend],
            },
            x="Date",
            y="Net worth",
        )
    if overview.change_series:
        st.bar_chart(
            {
                "Date": [format_date(c.date) for c in overview.change_series],
                "Change": [float(c.change) for c in overview.change_series],
            },
            x="Date",
            y="Change",
        )

    st.markdown("---")
    for entry in overview.entries:
        change = overview.changes.get(entry.id, 0)
        st.markdown(
            f"**{format_date(entry.date)}**: "
            f"{format_masked_currency(entry.amount, preferences)} "
            f"({format_masked_currency(change, preferences, show_sign=True)})"
        )

    with st.form("record_net_worth"):
        st.markdown("### Add a snapshot")
        entry_date = st.date_input("Date", value=date.today())
        amount = st.number_input("Net worth", value=0.0, step=1000.0)
        notes = st.text_input("Notes")
        if st.form_submit_button("Save"):
            try:
                run_async(net_worth_flow.record_entry(
                    entry_date, Decimal(str(amount)), notes=notes or None,
                ))
                st.rerun()
            except StorageError as e:
                st.error(f"Failed to save: {e}")


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    status = validate_all_settings()

    services = [
        ("Google Sheets (Storage)", "google_sheets"),
        ("Application settings", "app"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file with your settings. "
        "See `.env.example` for the available variables."
    )


if __name__ == "__main__":
    main()
