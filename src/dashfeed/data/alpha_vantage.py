"""
Alpha Vantage client for dashboard market data.

Every provider call goes through the shared RequestScheduler. Failures are
classified by the ErrorClassifier and then handled per endpoint:
- Quotes propagate the typed failure so the widget can offer a retry
- Intraday/daily series, market gainers and symbol search fall back to
  synthetic data so the dashboard stays populated
"""

from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import Any

import httpx
import orjson

from dashfeed.classifier import ErrorClassifier, payload_key
from dashfeed.config import get_settings
from dashfeed.data.normalization import (
    normalize_gainers,
    normalize_quote,
    normalize_search_matches,
    normalize_series,
)
from dashfeed.exceptions import DemoKeyRestrictedError, FetchError, SymbolNotFoundError
from dashfeed.fallback import DEFAULT_SERIES_LENGTH, FallbackSynthesizer
from dashfeed.logging import get_logger, log_context
from dashfeed.scheduler import RequestScheduler
from dashfeed.types import (
    EndpointKind,
    GainerEntry,
    Interval,
    QuoteResult,
    SearchMatch,
    Series,
)
from dashfeed.utils.symbols import is_valid_symbol, normalize_symbol

logger = get_logger(__name__)

# Watchlist cards show at most this many quotes
MAX_WATCHLIST_SYMBOLS = 5


class AlphaVantageClient:
    """Client for the Alpha Vantage query API.

    One instance per credential; the scheduler is shared by every client in
    the process so that all of them respect the same cadence.
    """

    def __init__(
        self,
        scheduler: RequestScheduler,
        api_key: str | None = None,
        *,
        base_url: str | None = None,
        synthesizer: FallbackSynthesizer | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            scheduler: Shared scheduler every call is queued on.
            api_key: Provider key. If None, reads ALPHA_VANTAGE_API_KEY from settings.
            base_url: Query endpoint. If None, read from settings.
            synthesizer: Source of fallback data. If None, seeded from settings.
            http_client: Preconfigured HTTP client (e.g. with a mock transport).
        """
        self.settings = get_settings()
        self.scheduler = scheduler
        self.api_key = api_key or self.settings.api_key
        self.base_url = base_url or self.settings.ALPHA_VANTAGE_BASE_URL
        self.synthesizer = synthesizer or FallbackSynthesizer(seed=self.settings.FALLBACK_SEED)
        self.classifier = ErrorClassifier(self.api_key)

        self._client = http_client
        self._owns_client = http_client is None

        if self.is_demo_key:
            logger.warning(
                "Using the demo API key - quotes will be rejected and other "
                "endpoints will serve synthetic data"
            )

    @property
    def is_demo_key(self) -> bool:
        return self.classifier.is_demo_key

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.settings.HTTP_TIMEOUT_SECONDS,
                follow_redirects=True,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._client and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> AlphaVantageClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _fetch(self, params: dict[str, str]) -> Any:
        """Issue one GET against the provider and decode the body.

        Runs inside a scheduler slot; never call it directly.
        """
        client = await self._get_client()
        logger.info("Fetching from Alpha Vantage", params=params)

        response = await client.get(self.base_url, params={**params, "apikey": self.api_key})
        response.raise_for_status()
        return orjson.loads(response.content)

    async def _call(
        self,
        endpoint: EndpointKind,
        params: dict[str, str] | None = None,
        *,
        symbol: str | None = None,
        interval: Interval | None = None,
    ) -> Any:
        """Queue a provider call and return the endpoint's data.

        Returns:
            The value under the endpoint's payload key.

        Raises:
            FetchError: Typed failure from the classifier.
        """
        request_params = {"function": endpoint.value, **(params or {})}
        future = self.scheduler.enqueue(
            lambda: self._fetch(request_params),
            endpoint=endpoint,
            params=request_params,
        )

        try:
            payload = await future
        except (httpx.HTTPError, orjson.JSONDecodeError) as e:
            raise self.classifier.classify_exception(e, endpoint, symbol=symbol) from e

        failure = self.classifier.classify_payload(
            endpoint, payload, symbol=symbol, interval=interval
        )
        if failure is not None:
            raise failure

        return payload[payload_key(endpoint, interval)]

    # ==================== Quotes ====================

    async def get_quote(self, symbol: str) -> QuoteResult:
        """Get a real-time quote.

        Args:
            symbol: Ticker symbol; trimmed and uppercased.

        Returns:
            Normalized quote.

        Raises:
            FetchError: Any failure, typed by kind. With the demo key this is
                always DemoKeyRestrictedError, even if the provider answered.
        """
        symbol = normalize_symbol(symbol)
        endpoint = EndpointKind.GLOBAL_QUOTE

        with log_context(endpoint=endpoint.value, symbol=symbol):
            try:
                if not is_valid_symbol(symbol):
                    raise SymbolNotFoundError(
                        f"Invalid symbol: {symbol!r}",
                        context={"endpoint": endpoint.value, "symbol": symbol},
                    )
                data = await self._call(endpoint, {"symbol": symbol}, symbol=symbol)
                quote = normalize_quote(data)
            except FetchError as e:
                if self.is_demo_key and not isinstance(e, DemoKeyRestrictedError):
                    raise self.classifier.demo_restricted(endpoint, symbol=symbol) from e
                logger.warning("Quote fetch failed", kind=e.kind.value, error=e.message)
                raise

            logger.debug("Fetched quote", price=quote.price)
            return quote

    async def get_quotes(self, symbols: list[str]) -> list[QuoteResult]:
        """Get quotes for a watchlist, keeping only those that succeed.

        Symbols are normalized and de-duplicated, then capped at
        MAX_WATCHLIST_SYMBOLS. Calls are queued in input order.

        Returns:
            Successful quotes in input order. Failed symbols are logged.
        """
        normalized = list(dict.fromkeys(normalize_symbol(s) for s in symbols if s.strip()))
        if len(normalized) > MAX_WATCHLIST_SYMBOLS:
            logger.warning(
                "Watchlist truncated",
                requested=len(normalized),
                limit=MAX_WATCHLIST_SYMBOLS,
            )
            normalized = normalized[:MAX_WATCHLIST_SYMBOLS]

        results = await asyncio.gather(
            *(self.get_quote(symbol) for symbol in normalized),
            return_exceptions=True,
        )

        quotes: list[QuoteResult] = []
        for symbol, result in zip(normalized, results):
            if isinstance(result, FetchError):
                logger.warning(
                    "Dropping watchlist symbol",
                    symbol=symbol,
                    kind=result.kind.value,
                )
            elif isinstance(result, BaseException):
                raise result
            else:
                quotes.append(result)
        return quotes

    # ==================== Time Series ====================

    async def get_intraday_series(self, symbol: str, interval: str = "5min") -> Series:
        """Get up to 100 intraday bars, oldest to newest.

        Falls back to a synthetic series on any failure.

        Raises:
            ValueError: If interval is not one of 1min/5min/15min/30min/60min,
                whatever the API key.
        """
        try:
            bar = Interval(interval)
        except ValueError as e:
            allowed = ", ".join(i.value for i in Interval)
            raise ValueError(f"Unsupported interval {interval!r}; expected one of {allowed}") from e

        symbol = normalize_symbol(symbol)
        endpoint = EndpointKind.TIME_SERIES_INTRADAY
        step = timedelta(minutes=bar.minutes)

        with log_context(endpoint=endpoint.value, symbol=symbol):
            if self.is_demo_key:
                return self._fallback_series(step, reason="demo key")
            if not is_valid_symbol(symbol):
                return self._fallback_series(step, reason="invalid symbol")

            try:
                data = await self._call(
                    endpoint,
                    {"symbol": symbol, "interval": bar.value, "outputsize": "compact"},
                    symbol=symbol,
                    interval=bar,
                )
                return normalize_series(data)
            except FetchError as e:
                return self._fallback_series(step, failure=e)

    async def get_daily_series(self, symbol: str) -> Series:
        """Get up to 100 daily bars, oldest to newest.

        Falls back to a synthetic series on any failure.
        """
        symbol = normalize_symbol(symbol)
        endpoint = EndpointKind.TIME_SERIES_DAILY
        step = timedelta(days=1)

        with log_context(endpoint=endpoint.value, symbol=symbol):
            if self.is_demo_key:
                return self._fallback_series(step, reason="demo key")
            if not is_valid_symbol(symbol):
                return self._fallback_series(step, reason="invalid symbol")

            try:
                data = await self._call(
                    endpoint,
                    {"symbol": symbol, "outputsize": "compact"},
                    symbol=symbol,
                )
                return normalize_series(data)
            except FetchError as e:
                return self._fallback_series(step, failure=e)

    def _fallback_series(
        self,
        step: timedelta,
        *,
        failure: FetchError | None = None,
        reason: str | None = None,
    ) -> Series:
        if failure is not None:
            logger.warning(
                "Series fetch failed, serving synthetic data",
                kind=failure.kind.value,
                error=failure.message,
            )
        else:
            logger.info("Serving synthetic series", reason=reason)
        return self.synthesizer.synthetic_series(DEFAULT_SERIES_LENGTH, step=step)

    # ==================== Market Movers ====================

    async def get_market_gainers(self) -> list[GainerEntry]:
        """Get up to 10 top gainers, falling back to synthetic entries."""
        endpoint = EndpointKind.TOP_GAINERS_LOSERS

        with log_context(endpoint=endpoint.value):
            if self.is_demo_key:
                logger.info("Serving synthetic gainers", reason="demo key")
                return self.synthesizer.synthetic_gainers()

            try:
                data = await self._call(endpoint)
                return normalize_gainers(data)
            except FetchError as e:
                logger.warning(
                    "Gainers fetch failed, serving synthetic data",
                    kind=e.kind.value,
                    error=e.message,
                )
                return self.synthesizer.synthetic_gainers()

    # ==================== Search ====================

    async def search_symbols(self, keywords: str) -> list[SearchMatch]:
        """Search symbols by keyword, falling back to the mock directory."""
        keywords = keywords.strip()
        endpoint = EndpointKind.SYMBOL_SEARCH

        with log_context(endpoint=endpoint.value):
            if not keywords:
                return []
            if self.is_demo_key:
                logger.info("Serving synthetic search results", reason="demo key")
                return self.synthesizer.synthetic_search(keywords)

            try:
                data = await self._call(endpoint, {"keywords": keywords})
                return normalize_search_matches(data)
            except FetchError as e:
                logger.warning(
                    "Search failed, serving synthetic results",
                    kind=e.kind.value,
                    error=e.message,
                )
                return self.synthesizer.synthetic_search(keywords)
