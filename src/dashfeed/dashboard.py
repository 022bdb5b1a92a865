"""
Widget data loading for an exported dashboard document.

The dashboard store is an external collaborator; this module only reads
configuration primitives (symbols, period, variant, page size) out of its
exported JSON and fans the widgets out over one shared client.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import orjson

from dashfeed.data import AlphaVantageClient
from dashfeed.exceptions import ConfigurationError, FetchError
from dashfeed.logging import get_logger
from dashfeed.types import GainerEntry, QuoteResult, Series
from dashfeed.utils.dates import CHART_PERIODS, filter_series_by_period
from dashfeed.utils.symbols import normalize_symbol

logger = get_logger(__name__)

WIDGET_TYPES = ("stock-table", "finance-card", "line-chart", "candlestick-chart")
CHART_TYPES = ("line-chart", "candlestick-chart")
DEFAULT_PAGE_SIZE = 10
# Gainers cards list this many rows
CARD_ROWS = 5


@dataclass(frozen=True)
class WidgetSpec:
    """Configuration primitives of one widget."""

    id: str
    type: str
    title: str
    symbols: tuple[str, ...] = ()
    symbol: str | None = None
    variant: str = "watchlist"
    period: str = "1D"
    page_size: int = DEFAULT_PAGE_SIZE


@dataclass
class WidgetData:
    """Data fetched for one widget."""

    widget: WidgetSpec
    quotes: list[QuoteResult] = field(default_factory=list)
    series: Series = ()
    gainers: list[GainerEntry] = field(default_factory=list)
    error: FetchError | None = None


def _widget_from_dict(raw: Any) -> WidgetSpec:
    if not isinstance(raw, dict):
        raise ConfigurationError(
            "Widget entry is not an object", context={"entry_type": type(raw).__name__}
        )

    widget_type = raw.get("type")
    if widget_type not in WIDGET_TYPES:
        raise ConfigurationError(
            f"Unknown widget type {widget_type!r}",
            context={"widget_id": raw.get("id"), "expected": WIDGET_TYPES},
        )

    config = raw.get("config") or {}
    if not isinstance(config, dict):
        raise ConfigurationError("Widget config is not an object", context={"widget_id": raw.get("id")})

    raw_symbols = config.get("symbols") or []
    symbol = config.get("symbol")
    if not isinstance(raw_symbols, list) or not all(isinstance(s, str) for s in raw_symbols):
        raise ConfigurationError("Widget symbols must be a list of strings", context={"widget_id": raw.get("id")})
    if symbol is not None and not isinstance(symbol, str):
        raise ConfigurationError("Widget symbol must be a string", context={"widget_id": raw.get("id")})
    symbols = tuple(normalize_symbol(s) for s in raw_symbols if s.strip())
    period = config.get("period") or "1D"
    if period not in CHART_PERIODS:
        raise ConfigurationError(
            f"Unknown chart period {period!r}",
            context={"widget_id": raw.get("id"), "expected": CHART_PERIODS},
        )

    page_size = config.get("pageSize") or DEFAULT_PAGE_SIZE
    if not isinstance(page_size, int) or isinstance(page_size, bool) or page_size < 1:
        raise ConfigurationError(
            f"Invalid page size {page_size!r}", context={"widget_id": raw.get("id")}
        )

    return WidgetSpec(
        id=str(raw.get("id", "")),
        type=widget_type,
        title=str(raw.get("title") or config.get("title") or widget_type),
        symbols=symbols,
        symbol=normalize_symbol(symbol) if symbol else (symbols[0] if symbols else None),
        variant=config.get("variant") or "watchlist",
        period=period,
        page_size=page_size,
    )


def parse_dashboard(document: bytes | str) -> list[WidgetSpec]:
    """Parse an exported dashboard document into widget specs.

    Raises:
        ConfigurationError: If the document is not valid JSON or a widget
            is misconfigured.
    """
    try:
        data = orjson.loads(document)
    except orjson.JSONDecodeError as e:
        raise ConfigurationError("Dashboard document is not valid JSON", context={"error": str(e)}) from e

    if not isinstance(data, dict) or not isinstance(data.get("widgets"), list):
        raise ConfigurationError("Dashboard document has no widget list")

    return [_widget_from_dict(raw) for raw in data["widgets"]]


def load_dashboard_file(path: Path) -> list[WidgetSpec]:
    """Read and parse a dashboard export from disk."""
    try:
        return parse_dashboard(path.read_bytes())
    except OSError as e:
        raise ConfigurationError(f"Cannot read dashboard file {path}", context={"error": str(e)}) from e


async def load_widget(client: AlphaVantageClient, widget: WidgetSpec) -> WidgetData:
    """Fetch whatever data a widget renders.

    Quote failures are captured on the result instead of raised, the way a
    widget shows an error with a retry action.
    """
    result = WidgetData(widget=widget)

    if widget.type in CHART_TYPES:
        if widget.symbol is None:
            raise ConfigurationError("Chart widget has no symbol", context={"widget_id": widget.id})
        if widget.period == "1D":
            result.series = await client.get_intraday_series(widget.symbol, "5min")
        else:
            daily = await client.get_daily_series(widget.symbol)
            result.series = filter_series_by_period(daily, widget.period)
        return result

    if widget.type == "finance-card" and widget.variant == "gainers":
        result.gainers = (await client.get_market_gainers())[:CARD_ROWS]
        return result

    if widget.type == "finance-card":
        result.quotes = await client.get_quotes(list(widget.symbols))
        if widget.symbols and not result.quotes:
            result.error = FetchError(
                "No quotes available for this watchlist",
                context={"widget_id": widget.id},
            )
        return result

    # Stock tables request every symbol and keep whichever succeed
    outcomes = await asyncio.gather(
        *(client.get_quote(symbol) for symbol in widget.symbols),
        return_exceptions=True,
    )
    for symbol, outcome in zip(widget.symbols, outcomes):
        if isinstance(outcome, FetchError):
            logger.warning("Table row failed", symbol=symbol, kind=outcome.kind.value)
            result.error = result.error or outcome
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            result.quotes.append(outcome)
    if result.quotes:
        result.error = None
    return result


async def load_dashboard(client: AlphaVantageClient, widgets: list[WidgetSpec]) -> list[WidgetData]:
    """Load every widget concurrently over the shared client."""
    logger.info("Loading dashboard", widgets=len(widgets))
    return list(await asyncio.gather(*(load_widget(client, widget) for widget in widgets)))
