"""
Date helpers for chart periods.

Charts request either an intraday series ("1D") or a daily series trimmed
to a trailing window.
"""

from __future__ import annotations

from datetime import date, timedelta

from dashfeed.types import Series

CHART_PERIODS = ("1D", "1W", "1M", "3M", "1Y")


def _months_back(today: date, months: int) -> date:
    month_index = today.month - 1 - months
    year = today.year + month_index // 12
    month = month_index % 12 + 1
    # Clamp to the last valid day, e.g. May 31 -> Feb 28
    for day in (today.day, 30, 29, 28):
        try:
            return date(year, month, day)
        except ValueError:
            continue
    raise AssertionError("unreachable")


def period_start(period: str, today: date | None = None) -> date | None:
    """First date included in a chart period.

    Args:
        period: One of CHART_PERIODS.
        today: Reference date. Defaults to date.today().

    Returns:
        The start date, or None for "1D" (no trimming).

    Raises:
        ValueError: If the period is unknown.
    """
    today = today or date.today()
    if period == "1D":
        return None
    if period == "1W":
        return today - timedelta(days=7)
    if period == "1M":
        return _months_back(today, 1)
    if period == "3M":
        return _months_back(today, 3)
    if period == "1Y":
        try:
            return today.replace(year=today.year - 1)
        except ValueError:
            return today.replace(year=today.year - 1, day=28)
    raise ValueError(f"Unknown chart period {period!r}; expected one of {CHART_PERIODS}")


def filter_series_by_period(series: Series, period: str, *, today: date | None = None) -> Series:
    """Keep the points of a daily series that fall inside a chart period."""
    start = period_start(period, today)
    if start is None:
        return series
    cutoff = start.isoformat()
    # Dates are ISO strings, so lexical order is chronological
    return tuple(point for point in series if point.date[:10] >= cutoff)
