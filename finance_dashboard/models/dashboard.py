"""
Dashboard summary model: income against expenses for one month, plus the
latest net worth.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class DashboardSummary(BaseModel):
    """
    Headline figures for the dashboard page.

    `net_position` is the month's income minus the current monthly cost of
    expenses. `previous_net_position` uses the previous income month and
    the expense cost as it stood on the first day of that month.
    """

    month: Optional[date] = Field(
        default=None,
        description="Income month shown; None when no income is recorded"
    )
    months: list[date] = Field(
        default_factory=list,
        description="Months with income entries, newest first"
    )
    income_total: Decimal = Decimal("0")
    previous_income_total: Decimal = Decimal("0")
    income_change_percentage: float = 0.0
    monthly_expenses: Decimal = Decimal("0")
    previous_monthly_expenses: Decimal = Decimal("0")
    net_position: Decimal = Decimal("0")
    previous_net_position: Decimal = Decimal("0")
    current_net_worth: Decimal = Decimal("0")
    previous_net_worth: Decimal = Decimal("0")
    net_worth_change_percentage: float = 0.0
