"""
Tests for dashboard widget loading.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import httpx
import orjson
import pytest

from conftest import quote_payload
from dashfeed.dashboard import (
    CARD_ROWS,
    WidgetSpec,
    load_dashboard,
    load_dashboard_file,
    load_widget,
    parse_dashboard,
)
from dashfeed.data import AlphaVantageClient
from dashfeed.exceptions import ConfigurationError, DemoKeyRestrictedError
from dashfeed.fallback import DEFAULT_SERIES_LENGTH
from dashfeed.scheduler import RequestScheduler

ClientFactory = Callable[..., AlphaVantageClient]

DOCUMENT = {
    "widgets": [
        {
            "id": "w1",
            "type": "stock-table",
            "title": "Tech",
            "config": {"symbols": ["aapl", "msft"], "pageSize": 25},
        },
        {
            "id": "w2",
            "type": "finance-card",
            "config": {"variant": "gainers"},
        },
        {
            "id": "w3",
            "type": "line-chart",
            "title": "Apple",
            "config": {"symbol": "aapl", "period": "1D"},
        },
        {
            "id": "w4",
            "type": "candlestick-chart",
            "config": {"symbols": ["tsla"], "period": "1M"},
        },
    ]
}


def _handler(request: httpx.Request) -> httpx.Response:
    symbol = request.url.params.get("symbol", "")
    if symbol == "MSFT":
        return httpx.Response(200, content=orjson.dumps({"Note": "slow down"}))
    return httpx.Response(200, content=orjson.dumps(quote_payload(symbol)))


class TestParseDashboard:
    def test_parses_widgets(self) -> None:
        widgets = parse_dashboard(orjson.dumps(DOCUMENT))

        assert [w.type for w in widgets] == [
            "stock-table",
            "finance-card",
            "line-chart",
            "candlestick-chart",
        ]
        table, card, line, candle = widgets
        assert table.symbols == ("AAPL", "MSFT")
        assert table.page_size == 25
        assert table.title == "Tech"
        assert card.variant == "gainers"
        assert card.title == "finance-card"
        assert line.symbol == "AAPL"
        assert candle.symbol == "TSLA"
        assert candle.period == "1M"

    @pytest.mark.parametrize(
        "document",
        [
            "not json",
            "[]",
            '{"widgets": {}}',
            '{"widgets": [{"type": "pie-chart"}]}',
            '{"widgets": [{"type": "line-chart", "config": {"period": "5Y"}}]}',
            '{"widgets": ["AAPL"]}',
            '{"widgets": [{"type": "stock-table", "config": "AAPL"}]}',
            '{"widgets": [{"type": "stock-table", "config": {"symbols": [123]}}]}',
            '{"widgets": [{"type": "stock-table", "config": {"symbols": "AAPL"}}]}',
            '{"widgets": [{"type": "line-chart", "config": {"symbol": 7}}]}',
            '{"widgets": [{"type": "stock-table", "config": {"pageSize": "ten"}}]}',
        ],
    )
    def test_rejects_bad_documents(self, document: str) -> None:
        with pytest.raises(ConfigurationError):
            parse_dashboard(document)

    def test_load_from_file(self, tmp_path: Path) -> None:
        path = tmp_path / "dashboard.json"
        path.write_bytes(orjson.dumps(DOCUMENT))

        assert len(load_dashboard_file(path)) == 4

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError):
            load_dashboard_file(tmp_path / "missing.json")


class TestLoadDashboard:
    @pytest.mark.asyncio
    async def test_widgets_share_the_scheduler(
        self,
        make_client: ClientFactory,
        scheduler: RequestScheduler,
    ) -> None:
        """Every widget queues on the same cadence."""
        client = make_client(_handler)
        widgets = parse_dashboard(orjson.dumps(DOCUMENT))

        table, card, line, candle = await load_dashboard(client, widgets)

        assert [q.symbol for q in table.quotes] == ["AAPL"]
        assert table.error is None
        assert len(card.gainers) == CARD_ROWS
        assert len(line.series) == DEFAULT_SERIES_LENGTH
        assert 0 < len(candle.series) <= DEFAULT_SERIES_LENGTH
        assert scheduler.dispatch_times == pytest.approx([12.0 * i for i in range(5)])

    @pytest.mark.asyncio
    async def test_demo_key_table_reports_restriction(self, make_client: ClientFactory) -> None:
        client = make_client(_handler, api_key="demo")
        widget = WidgetSpec(id="t", type="stock-table", title="T", symbols=("AAPL", "MSFT"))

        data = await load_widget(client, widget)

        assert data.quotes == []
        assert isinstance(data.error, DemoKeyRestrictedError)

    @pytest.mark.asyncio
    async def test_demo_key_watchlist_card_reports_error(self, make_client: ClientFactory) -> None:
        client = make_client(_handler, api_key="demo")
        widget = WidgetSpec(id="c", type="finance-card", title="C", symbols=("AAPL",))

        data = await load_widget(client, widget)

        assert data.quotes == []
        assert data.error is not None

    @pytest.mark.asyncio
    async def test_chart_without_symbol_is_rejected(self, make_client: ClientFactory) -> None:
        client = make_client(_handler)
        widget = WidgetSpec(id="x", type="line-chart", title="X")

        with pytest.raises(ConfigurationError):
            await load_widget(client, widget)
