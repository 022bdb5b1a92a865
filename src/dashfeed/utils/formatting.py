"""Display formatting for quotes and series values."""

from __future__ import annotations

import math
from dataclasses import dataclass


def format_currency(value: float, decimals: int = 2) -> str:
    """Format a value as US dollars, e.g. `$1,234.50`."""
    if math.isnan(value):
        return "$0.00"
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.{decimals}f}"


def format_percentage(value: float, decimals: int = 2) -> str:
    """Format a percentage expressed in percent units, e.g. `1.25%`."""
    if math.isnan(value):
        return "0.00%"
    return f"{value:,.{decimals}f}%"


def format_number(value: float) -> str:
    """Abbreviate large numbers (volume, market cap) with K/M/B/T."""
    if math.isnan(value):
        return "0"
    if value >= 1e12:
        return f"{value / 1e12:.2f}T"
    if value >= 1e9:
        return f"{value / 1e9:.2f}B"
    if value >= 1e6:
        return f"{value / 1e6:.2f}M"
    if value >= 1e3:
        return f"{value / 1e3:.1f}K"
    return f"{value:,.0f}" if float(value).is_integer() else f"{value:,}"


@dataclass(frozen=True)
class FormattedChange:
    change: str
    change_percent: str
    style: str
    is_positive: bool


def format_change(change: float, change_percent: float) -> FormattedChange:
    """Signed change strings plus the rich style to render them with."""
    is_positive = change >= 0
    sign = "+" if is_positive else ""
    return FormattedChange(
        change=f"{sign}{format_currency(change)}",
        change_percent=f"{sign}{format_percentage(change_percent)}",
        style="green" if is_positive else "red",
        is_positive=is_positive,
    )
