"""
Core types for the market data layer.

This module defines the data structures that flow between the scheduler,
the fetch client and its callers:
- Enums for provider endpoints, failure kinds and intraday intervals
- Frozen dataclasses for normalized results (QuoteResult, HistoricalPoint,
  GainerEntry, SearchMatch)
- The Request unit of work owned by the scheduler
- A helper for request ID generation
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from uuid6 import uuid7


def generate_id(prefix: str = "") -> str:
    """Generate a time-ordered unique ID using UUID7.

    Args:
        prefix: Optional prefix for the ID (e.g., "req")

    Returns:
        A unique ID string, optionally prefixed.
    """
    uid = str(uuid7())
    return f"{prefix}_{uid}" if prefix else uid


class EndpointKind(str, Enum):
    """Provider endpoints; values are the provider's `function` parameter."""

    GLOBAL_QUOTE = "GLOBAL_QUOTE"
    TIME_SERIES_INTRADAY = "TIME_SERIES_INTRADAY"
    TIME_SERIES_DAILY = "TIME_SERIES_DAILY"
    TOP_GAINERS_LOSERS = "TOP_GAINERS_LOSERS"
    SYMBOL_SEARCH = "SYMBOL_SEARCH"


class FailureKind(str, Enum):
    """Typed failure categories produced by the error classifier."""

    PROVIDER_ERROR = "provider_error"
    QUOTA_EXCEEDED = "quota_exceeded"
    DEMO_KEY_RESTRICTED = "demo_key_restricted"
    SYMBOL_NOT_FOUND = "symbol_not_found"
    NETWORK_ERROR = "network_error"
    MALFORMED_RESPONSE = "malformed_response"


class Interval(str, Enum):
    """Intraday bar sizes accepted by the provider."""

    ONE_MIN = "1min"
    FIVE_MIN = "5min"
    FIFTEEN_MIN = "15min"
    THIRTY_MIN = "30min"
    SIXTY_MIN = "60min"

    @property
    def minutes(self) -> int:
        return int(self.value.removesuffix("min"))


@dataclass(frozen=True)
class QuoteResult:
    """Normalized real-time quote for a single symbol."""

    symbol: str
    price: float
    change: float
    change_percent: float
    open: float
    high: float
    low: float
    previous_close: float
    last_updated: str
    name: str | None = None
    volume: int | None = None


@dataclass(frozen=True)
class HistoricalPoint:
    """One OHLCV bar. `date` is `YYYY-MM-DD` or `YYYY-MM-DD HH:MM:SS`."""

    date: str
    open: float
    high: float
    low: float
    close: float
    volume: int


# Ordered oldest -> newest
Series = tuple[HistoricalPoint, ...]


@dataclass(frozen=True)
class GainerEntry:
    """One row of the provider's top gainers list."""

    ticker: str
    price: float
    change_amount: float
    change_percentage: float


@dataclass(frozen=True)
class SearchMatch:
    """One symbol search hit."""

    symbol: str
    name: str
    type: str
    region: str
    match_score: float
    market_open: str = "09:30"
    market_close: str = "16:00"
    timezone: str = "UTC-04"
    currency: str = "USD"


@dataclass(eq=False)
class Request:
    """A unit of work waiting in the scheduler queue.

    Identity is per call; two requests for the same symbol are never merged.
    """

    task: Callable[[], Awaitable[Any]]
    future: asyncio.Future[Any]
    enqueued_at: float
    endpoint: EndpointKind | None = None
    params: dict[str, Any] = field(default_factory=dict)
    request_id: str = field(default_factory=lambda: generate_id("req"))
