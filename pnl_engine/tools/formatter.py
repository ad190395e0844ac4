"""
P&L Display Formatting

Converts rolled-up numbers into the strings shown in statement cells:
- Amounts: rounded to whole units, thousands-grouped, negatives in parentheses
- Percentages: one decimal place with a trailing %
- Month labels: ISO dates rendered as "Mon - YYYY"

Near-zero values render as "-" so empty cells read cleanly.
"""
import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional
import logging

logger = logging.getLogger(__name__)

ZERO_TOLERANCE = 1e-4
BLANK = "-"

MONTH_ABBREVIATIONS = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
]


def _as_number(n: Any) -> Optional[float]:
    """Numeric value or None for falsy / non-numeric / NaN input."""
    if n is None or isinstance(n, bool):
        return None
    try:
        value = float(n)
    except (TypeError, ValueError):
        return None
    if math.isnan(value):
        return None
    return value


def to_amount(n: Any) -> float:
    """Ledger amount as a float; missing, non-numeric and non-finite values count as 0."""
    value = _as_number(n)
    if value is None or math.isinf(value):
        return 0.0
    return value


def is_near_zero(n: Any, tolerance: float = ZERO_TOLERANCE) -> bool:
    value = _as_number(n)
    return value is None or abs(value) < tolerance


def _round_half_up(value: float) -> int:
    return int(Decimal(repr(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def fmt(n: Any) -> str:
    """
    Format an amount for a statement cell.

    Examples:
        fmt(0) -> "-"
        fmt(-1234.7) -> "(1,235)"
        fmt(1234.4) -> "1,234"
    """
    if is_near_zero(n):
        return BLANK

    value = _as_number(n)
    if math.isinf(value):
        return BLANK

    if value < 0:
        return f"({_round_half_up(abs(value)):,})"
    return f"{_round_half_up(value):,}"


def fmt_pct(n: Any) -> str:
    """
    Format a percentage (already scaled to 0-100).

    Examples:
        fmt_pct(0) -> "-"
        fmt_pct(12.34) -> "12.3%"
    """
    if is_near_zero(n):
        return BLANK

    value = _as_number(n)
    if math.isinf(value):
        return BLANK
    return f"{value:.1f}%"


def percent_of(numerator: float, denominator: Any) -> Optional[float]:
    """numerator / denominator * 100, or None when the denominator is zero or absent."""
    base = _as_number(denominator)
    if not base:
        return None
    return numerator / base * 100


def format_month_label(iso_date: Any) -> str:
    """
    Render an ISO date prefix (YYYY-MM-DD) as "Mon - YYYY".

    Unparseable input is returned unchanged; empty input renders as "".
    """
    if not iso_date:
        return ""

    try:
        parts = str(iso_date)[:10].split("-")
        year, month = parts[0], parts[1]
        if not year.isdigit():
            raise ValueError(f"bad year {year!r}")
        month_index = int(month)
        if not 1 <= month_index <= 12:
            raise ValueError(f"month out of range: {month_index}")
        return f"{MONTH_ABBREVIATIONS[month_index - 1]} - {year}"
    except (IndexError, ValueError) as e:
        logger.debug(f"Could not parse month label {iso_date!r}: {e}")
        return iso_date if isinstance(iso_date, str) else str(iso_date)


def format_count(n: Optional[int]) -> str:
    """Header count line value; missing counts show as "-"."""
    return BLANK if n is None else str(n)


def format_census(n: Any) -> str:
    value = _as_number(n)
    if value is None or math.isinf(value):
        return BLANK
    return str(_round_half_up(value))
