"""Normalize provider payloads into domain values."""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from dashfeed.exceptions import MalformedResponseError
from dashfeed.types import GainerEntry, HistoricalPoint, QuoteResult, SearchMatch, Series

MAX_SERIES_POINTS = 100
MAX_GAINERS = 10
MAX_SEARCH_RESULTS = 10


def _field(raw: Mapping[str, Any], key: str) -> Any:
    return raw.get(key) if isinstance(raw, Mapping) else None


def _number(raw: Mapping[str, Any], key: str) -> float:
    try:
        value = float(str(raw[key]).strip().rstrip("%"))
    except (KeyError, TypeError, ValueError) as e:
        raise MalformedResponseError(
            f"Missing or non-numeric field {key!r}",
            context={"field": key, "value": _field(raw, key)},
        ) from e
    if not math.isfinite(value):
        raise MalformedResponseError(
            f"Non-finite value in field {key!r}",
            context={"field": key, "value": _field(raw, key)},
        )
    return value


def _integer(raw: Mapping[str, Any], key: str) -> int:
    return int(_number(raw, key))


def _text(raw: Mapping[str, Any], key: str) -> str:
    value = _field(raw, key)
    if not isinstance(value, str) or not value.strip():
        raise MalformedResponseError(
            f"Missing text field {key!r}",
            context={"field": key, "value": value},
        )
    return value.strip()


def normalize_quote(quote: Mapping[str, Any]) -> QuoteResult:
    """Map a `Global Quote` object into a QuoteResult.

    Raises:
        MalformedResponseError: If the quote is not an object, a field is
            missing or non-numeric, or the quote violates `high >= low` or
            has a negative price.
    """
    if not isinstance(quote, Mapping):
        raise MalformedResponseError(
            "Quote payload is not an object",
            context={"payload_type": type(quote).__name__},
        )

    price = _number(quote, "05. price")
    high = _number(quote, "03. high")
    low = _number(quote, "04. low")

    if price < 0:
        raise MalformedResponseError("Quote price is negative", context={"price": price})
    if high < low:
        raise MalformedResponseError(
            "Quote high is below low", context={"high": high, "low": low}
        )

    volume = quote.get("06. volume")
    return QuoteResult(
        symbol=_text(quote, "01. symbol").upper(),
        price=price,
        change=_number(quote, "09. change"),
        change_percent=_number(quote, "10. change percent"),
        open=_number(quote, "02. open"),
        high=high,
        low=low,
        previous_close=_number(quote, "08. previous close"),
        volume=_integer(quote, "06. volume") if volume not in (None, "") else None,
        last_updated=_text(quote, "07. latest trading day"),
    )


def normalize_series(time_series: Mapping[str, Any], limit: int = MAX_SERIES_POINTS) -> Series:
    """Map a `Time Series (...)` object into a series.

    Keeps the newest `limit` entries and returns them oldest to newest.
    """
    if not isinstance(time_series, Mapping):
        raise MalformedResponseError(
            "Time series payload is not an object",
            context={"payload_type": type(time_series).__name__},
        )

    # Timestamps are ISO formatted, so lexical order is chronological
    newest_first = sorted(time_series.items(), key=lambda item: item[0], reverse=True)[:limit]

    points = []
    for stamp, bar in reversed(newest_first):
        if not isinstance(bar, Mapping):
            raise MalformedResponseError("Time series entry is not an object", context={"date": stamp})
        point = HistoricalPoint(
            date=stamp,
            open=_number(bar, "1. open"),
            high=_number(bar, "2. high"),
            low=_number(bar, "3. low"),
            close=_number(bar, "4. close"),
            volume=_integer(bar, "5. volume"),
        )
        if point.high < point.low:
            raise MalformedResponseError(
                "Bar high is below low",
                context={"date": stamp, "high": point.high, "low": point.low},
            )
        points.append(point)

    return tuple(points)


def _rows(rows: Any, limit: int, what: str) -> list[Mapping[str, Any]]:
    if not isinstance(rows, list) or not all(isinstance(row, Mapping) for row in rows):
        raise MalformedResponseError(f"{what} payload is not a list of objects")
    return rows[:limit]


def normalize_gainers(rows: Any, limit: int = MAX_GAINERS) -> list[GainerEntry]:
    """Map the `top_gainers` array into GainerEntry values."""
    return [
        GainerEntry(
            ticker=_text(row, "ticker"),
            price=_number(row, "price"),
            change_amount=_number(row, "change_amount"),
            change_percentage=_number(row, "change_percentage"),
        )
        for row in _rows(rows, limit, "Gainers")
    ]


def normalize_search_matches(rows: Any, limit: int = MAX_SEARCH_RESULTS) -> list[SearchMatch]:
    """Map the `bestMatches` array into SearchMatch values."""
    matches = []
    for row in _rows(rows, limit, "Search"):
        matches.append(
            SearchMatch(
                symbol=_text(row, "1. symbol"),
                name=_text(row, "2. name"),
                type=str(row.get("3. type", "")),
                region=str(row.get("4. region", "")),
                match_score=_number(row, "9. matchScore"),
                market_open=str(row.get("5. marketOpen", "")),
                market_close=str(row.get("6. marketClose", "")),
                timezone=str(row.get("7. timezone", "")),
                currency=str(row.get("8. currency", "")),
            )
        )
    return matches
