"""
Tests for payload normalization.
"""

from __future__ import annotations

from typing import Any

import pytest

from conftest import quote_payload, series_payload
from dashfeed.data.normalization import (
    normalize_gainers,
    normalize_quote,
    normalize_search_matches,
    normalize_series,
)
from dashfeed.exceptions import MalformedResponseError


def _quote(**overrides: str) -> dict[str, Any]:
    quote = dict(quote_payload("aapl")["Global Quote"])
    quote.update(overrides)
    return quote


class TestNormalizeQuote:
    def test_symbol_is_uppercased(self) -> None:
        assert normalize_quote(_quote()).symbol == "AAPL"

    def test_percent_sign_is_stripped(self) -> None:
        quote = normalize_quote(_quote(**{"10. change percent": "-1.5012%"}))

        assert quote.change_percent == pytest.approx(-1.5012)

    def test_missing_volume_is_allowed(self) -> None:
        raw = _quote()
        del raw["06. volume"]

        assert normalize_quote(raw).volume is None

    @pytest.mark.parametrize(
        "overrides",
        [
            {"05. price": "-1.00"},
            {"03. high": "10.0", "04. low": "20.0"},
            {"05. price": "n/a"},
            {"05. price": "NaN"},
            {"07. latest trading day": ""},
        ],
    )
    def test_invalid_quotes_are_rejected(self, overrides: dict[str, str]) -> None:
        with pytest.raises(MalformedResponseError):
            normalize_quote(_quote(**overrides))

    @pytest.mark.parametrize("raw", [["AAPL"], "AAPL 189.84", 189.84])
    def test_non_object_quote_is_malformed(self, raw: Any) -> None:
        with pytest.raises(MalformedResponseError) as exc_info:
            normalize_quote(raw)

        assert exc_info.value.context["payload_type"] == type(raw).__name__

    def test_missing_field_names_the_field(self) -> None:
        raw = _quote()
        del raw["09. change"]

        with pytest.raises(MalformedResponseError) as exc_info:
            normalize_quote(raw)

        assert exc_info.value.context["field"] == "09. change"


class TestNormalizeSeries:
    def test_orders_oldest_first(self) -> None:
        stamps = ["2024-05-15", "2024-05-17", "2024-05-16"]
        data = series_payload("Time Series (Daily)", stamps)["Time Series (Daily)"]

        series = normalize_series(data)

        assert [p.date for p in series] == ["2024-05-15", "2024-05-16", "2024-05-17"]
        assert series[-1].open == pytest.approx(100.0)
        assert series[-1].volume == 1000

    def test_limit_keeps_most_recent(self) -> None:
        stamps = [f"2024-05-{day:02d}" for day in range(1, 11)]
        data = series_payload("Time Series (Daily)", stamps)["Time Series (Daily)"]

        series = normalize_series(data, limit=3)

        assert [p.date for p in series] == ["2024-05-08", "2024-05-09", "2024-05-10"]

    def test_empty_series(self) -> None:
        assert normalize_series({}) == ()

    def test_rejects_non_object(self) -> None:
        with pytest.raises(MalformedResponseError):
            normalize_series([])

    def test_rejects_inverted_bar(self) -> None:
        bar = {
            "1. open": "10",
            "2. high": "9",
            "3. low": "11",
            "4. close": "10",
            "5. volume": "100",
        }

        with pytest.raises(MalformedResponseError) as exc_info:
            normalize_series({"2024-05-17": bar})

        assert exc_info.value.context["date"] == "2024-05-17"


class TestNormalizeLists:
    def test_gainers_cap(self) -> None:
        rows = [
            {"ticker": f"T{i}", "price": "1", "change_amount": "0.1", "change_percentage": "10%"}
            for i in range(12)
        ]

        gainers = normalize_gainers(rows)

        assert len(gainers) == 10
        assert gainers[0].change_percentage == pytest.approx(10.0)

    def test_gainers_reject_non_list(self) -> None:
        with pytest.raises(MalformedResponseError):
            normalize_gainers({"ticker": "AAPL"})

    def test_search_defaults_optional_fields(self) -> None:
        rows = [{"1. symbol": "IBM", "2. name": "International Business Machines", "9. matchScore": "1.0000"}]

        match = normalize_search_matches(rows)[0]

        assert match.symbol == "IBM"
        assert match.type == ""
        assert match.match_score == 1.0

    def test_search_rejects_non_object_rows(self) -> None:
        with pytest.raises(MalformedResponseError):
            normalize_search_matches(["IBM"])
