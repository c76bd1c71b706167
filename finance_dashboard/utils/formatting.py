"""
Presentation helpers: currency, percentages, dates, chart ticks and
privacy masking.

Privacy mode is passed in as `DisplayPreferences`; nothing here reads
global state.
"""

import math
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, MutableMapping, Optional, Sequence, TypeVar, Union

from pydantic import BaseModel, ConfigDict


T = TypeVar("T")

Number = Union[Decimal, int, float]

DEFAULT_MASK = "•••••"
AXIS_MASK = "•••"

MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


class DisplayPreferences(BaseModel):
    """User display preferences that affect how figures are rendered."""
    model_config = ConfigDict(frozen=True)

    privacy_hidden: bool = False
    mask: str = DEFAULT_MASK


PRIVACY_STATE_KEY = "privacy_hidden"


def session_preferences(
    state: MutableMapping[str, Any],
    privacy_default: bool,
) -> DisplayPreferences:
    """
    Display preferences for one UI session.

    The privacy flag is seeded from `privacy_default` the first time the
    session is seen. After that the session value wins, so a toggle keyed
    on `PRIVACY_STATE_KEY` starts from the configured default.
    """
    if PRIVACY_STATE_KEY not in state:
        state[PRIVACY_STATE_KEY] = privacy_default
    return DisplayPreferences(privacy_hidden=bool(state[PRIVACY_STATE_KEY]))


def _to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _plain(value: Decimal) -> str:
    """Shortest plain rendering: 2 → '2', 2.50 → '2.5'."""
    if value == value.to_integral_value():
        return str(int(value))
    return format(value.normalize(), "f")


def _with_sign(formatted: str, amount: Decimal, show_sign: bool) -> str:
    if show_sign and amount != 0:
        return f"+{formatted}" if amount > 0 else f"-{formatted}"
    return f"-{formatted}" if amount < 0 else formatted


# =============================================================================
# CURRENCY
# =============================================================================

def format_currency(
    amount: Number,
    show_sign: bool = False,
    compact: bool = False,
) -> str:
    """
    Format an amount as USD.

    Standard:  1234.5 → '$1,234.50', 1200 → '$1,200' (a trailing .00 is dropped)
    Compact:   1500000 → '$1.5M', 24000 → '$24K', 950.4 → '$950'

    Negative amounts get a leading '-'. With `show_sign`, non-zero positive
    amounts get a leading '+'.
    """
    amount = _to_decimal(amount)
    absolute = abs(amount)

    if compact:
        if absolute >= 1_000_000:
            formatted = f"${_compact(absolute / 1_000_000)}M"
        elif absolute >= 1_000:
            formatted = f"${_compact(absolute / 1_000)}K"
        else:
            formatted = f"${absolute.quantize(Decimal('1'), rounding=ROUND_HALF_UP)}"
        return _with_sign(formatted, amount, show_sign)

    cents = absolute.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    formatted = f"${cents:,.2f}"
    if formatted.endswith(".00"):
        formatted = formatted[:-3]
    return _with_sign(formatted, amount, show_sign)


def _compact(value: Decimal) -> str:
    # only show a decimal when the value is not round
    if value == value.to_integral_value():
        return str(int(value))
    return str(value.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def format_axis_tick(
    value: Number,
    preferences: Optional[DisplayPreferences] = None,
) -> str:
    """Y-axis tick label: 1000 → '$1k', 1500 → '$1.5k', 950 → '$950'."""
    if preferences is not None and preferences.privacy_hidden:
        return AXIS_MASK
    value = _to_decimal(value)
    if value >= 1000:
        thousands = value / 1000
        if thousands == thousands.to_integral_value():
            return f"${int(thousands)}k"
        return f"${thousands.quantize(Decimal('0.1'), rounding=ROUND_HALF_UP)}k"
    return f"${_plain(value)}"


# =============================================================================
# PERCENTAGES
# =============================================================================

def calculate_percentage_change(current: Number, previous: Number) -> float:
    """
    Percentage change from `previous` to `current`.

    A previous value of zero gives 100, -100 or 0 depending on the sign of
    `current`.
    """
    current = float(current)
    previous = float(previous)
    if previous == 0:
        if current > 0:
            return 100.0
        if current < 0:
            return -100.0
        return 0.0
    return (current - previous) / abs(previous) * 100


def format_percentage(value: float) -> str:
    """12.54 → '+12.5%', -3.0 → '-3%', 0 → '0%'."""
    sign = "+" if value > 0 else ""
    formatted = f"{value:.1f}"
    if formatted.endswith(".0"):
        formatted = formatted[:-2]
    if formatted == "-0":
        formatted = "0"
    return f"{sign}{formatted}%"


# =============================================================================
# DATES
# =============================================================================

def parse_local_date(value: Union[date, datetime, str]) -> date:
    """
    Parse 'YYYY-MM-DD' or 'YYYY-MM' as a calendar date.

    The string is split rather than parsed as a timestamp so no timezone
    shift can move it to the previous day. A missing day means the 1st.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    parts = [int(p) for p in value[:10].split("-")]
    year, month = parts[0], parts[1]
    day = parts[2] if len(parts) > 2 else 1
    return date(year, month, day)


def format_month(value: Union[date, datetime, str]) -> str:
    """'2025-01' → 'January 2025'."""
    d = parse_local_date(value)
    return f"{MONTH_NAMES[d.month - 1]} {d.year}"


def format_month_short(value: Union[date, datetime, str]) -> str:
    """'2025-01' → 'Jan 2025'."""
    d = parse_local_date(value)
    return f"{MONTH_NAMES[d.month - 1][:3]} {d.year}"


def format_date(value: Union[date, datetime, str]) -> str:
    """'2025-01-05' → 'January 5, 2025'."""
    d = parse_local_date(value)
    return f"{MONTH_NAMES[d.month - 1]} {d.day}, {d.year}"


def truncate(text: str, length: int) -> str:
    if len(text) <= length:
        return text
    return text[:length] + "..."


# =============================================================================
# CHART TICKS
# =============================================================================

def evenly_space_pick(items: Sequence[T], max_count: int) -> list[T]:
    """
    Pick items at a constant step starting from index 0.

    Every pair of adjacent picks has the same gap, so ticks look evenly
    spaced on a categorical axis.
    """
    if len(items) <= max_count:
        return list(items)
    step = math.ceil(len(items) / max_count)
    return list(items[::step])


def compute_chart_ticks(
    dates: Sequence[str],
    max_ticks: int = 5,
) -> tuple[list[str], Callable[[str], str]]:
    """
    Choose X axis ticks and a label formatter for a date series.

    Data spanning 3+ distinct years is labelled by year ('2024'), anything
    shorter by month abbreviation ('Mar'). Ticks are thinned to about
    `max_ticks`.

    Returns:
        (ticks, formatter)
    """
    if not dates:
        return [], lambda value: value

    years = {parse_local_date(d).year for d in dates}
    ticks = evenly_space_pick(dates, max_ticks)

    if len(years) >= 3:
        return ticks, lambda value: str(parse_local_date(value).year)

    return ticks, lambda value: MONTH_NAMES[parse_local_date(value).month - 1][:3]


# =============================================================================
# PRIVACY
# =============================================================================

def mask_value(
    text: str,
    preferences: DisplayPreferences,
    revealed: bool = False,
) -> str:
    """Hide a rendered figure when privacy mode is on, unless revealed."""
    if preferences.privacy_hidden and not revealed:
        return preferences.mask
    return text


def format_masked_currency(
    amount: Number,
    preferences: DisplayPreferences,
    revealed: bool = False,
    show_sign: bool = False,
    compact: bool = False,
) -> str:
    """`format_currency` followed by `mask_value`."""
    return mask_value(
        format_currency(amount, show_sign=show_sign, compact=compact),
        preferences,
        revealed=revealed,
    )
