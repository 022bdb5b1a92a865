"""Utility modules for the market data layer."""

from dashfeed.utils.dates import CHART_PERIODS, filter_series_by_period, period_start
from dashfeed.utils.formatting import (
    format_change,
    format_currency,
    format_number,
    format_percentage,
)
from dashfeed.utils.symbols import is_valid_symbol, normalize_symbol, parse_symbol_list

__all__ = [
    "CHART_PERIODS",
    "filter_series_by_period",
    "period_start",
    "format_change",
    "format_currency",
    "format_number",
    "format_percentage",
    "is_valid_symbol",
    "normalize_symbol",
    "parse_symbol_list",
]
