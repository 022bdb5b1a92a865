"""
Error classification for provider outcomes.

Maps a raw provider payload or a transport exception into exactly one
typed FetchError. Payload checks run in a fixed precedence order:
explicit error message, quota notice, demo credential, missing data.
"""

from __future__ import annotations

from typing import Any

import httpx
import orjson

from dashfeed.config import DEMO_API_KEY
from dashfeed.exceptions import (
    DemoKeyRestrictedError,
    FetchError,
    MalformedResponseError,
    NetworkError,
    ProviderError,
    QuotaExceededError,
    SymbolNotFoundError,
)
from dashfeed.types import EndpointKind, Interval

ERROR_MESSAGE_FIELD = "Error Message"
# "Information" carries the same notice on newer provider responses
QUOTA_NOTICE_FIELDS = ("Note", "Information")


def payload_key(endpoint: EndpointKind, interval: Interval | None = None) -> str:
    """Key under which an endpoint's data sits in a successful payload."""
    if endpoint is EndpointKind.GLOBAL_QUOTE:
        return "Global Quote"
    if endpoint is EndpointKind.TIME_SERIES_INTRADAY:
        if interval is None:
            raise ValueError("interval is required for intraday payloads")
        return f"Time Series ({interval.value})"
    if endpoint is EndpointKind.TIME_SERIES_DAILY:
        return "Time Series (Daily)"
    if endpoint is EndpointKind.TOP_GAINERS_LOSERS:
        return "top_gainers"
    return "bestMatches"


class ErrorClassifier:
    """Turn provider outcomes into typed failures."""

    def __init__(self, api_key: str) -> None:
        self.api_key = api_key

    @property
    def is_demo_key(self) -> bool:
        return self.api_key == DEMO_API_KEY

    def demo_restricted(
        self, endpoint: EndpointKind, *, symbol: str | None = None
    ) -> DemoKeyRestrictedError:
        """Failure reported for any live call made with the demo key."""
        context: dict[str, Any] = {"endpoint": endpoint.value}
        if symbol:
            context["symbol"] = symbol
        return DemoKeyRestrictedError(
            "Demo API key has limited functionality. "
            "Please get a free API key from Alpha Vantage.",
            context=context,
        )

    def classify_payload(
        self,
        endpoint: EndpointKind,
        payload: Any,
        *,
        symbol: str | None = None,
        interval: Interval | None = None,
    ) -> FetchError | None:
        """Classify a decoded provider payload.

        Args:
            endpoint: Endpoint the payload came from.
            payload: Decoded JSON body.
            symbol: Requested symbol, if any.
            interval: Requested intraday interval, if any.

        Returns:
            None if the payload carries usable data, else the typed failure.
        """
        context: dict[str, Any] = {"endpoint": endpoint.value}
        if symbol:
            context["symbol"] = symbol

        if not isinstance(payload, dict):
            return MalformedResponseError(
                "Provider returned a non-object payload",
                context={**context, "payload_type": type(payload).__name__},
            )

        if payload.get(ERROR_MESSAGE_FIELD):
            return ProviderError(str(payload[ERROR_MESSAGE_FIELD]), context=context)

        for notice_field in QUOTA_NOTICE_FIELDS:
            if payload.get(notice_field):
                return QuotaExceededError(
                    "API call frequency exceeded. Please try again later.",
                    context={**context, "notice": str(payload[notice_field])},
                )

        if self.is_demo_key:
            return self.demo_restricted(endpoint, symbol=symbol)

        key = payload_key(endpoint, interval)
        data = payload.get(key)

        if endpoint is EndpointKind.SYMBOL_SEARCH:
            # An empty match list is a valid "no results" answer
            if not isinstance(data, list):
                return MalformedResponseError(
                    "Search payload is missing matches",
                    context={**context, "expected_key": key},
                )
            return None

        if not data:
            if endpoint is EndpointKind.GLOBAL_QUOTE:
                return SymbolNotFoundError(
                    f"No quote data found for symbol: {symbol}. "
                    "Please check if the symbol is valid.",
                    context=context,
                )
            return MalformedResponseError(
                f"No data available under {key!r}",
                context={**context, "expected_key": key},
            )

        return None

    def classify_exception(
        self,
        exc: BaseException,
        endpoint: EndpointKind,
        *,
        symbol: str | None = None,
    ) -> FetchError:
        """Classify an exception raised while calling the provider."""
        if isinstance(exc, FetchError):
            return exc

        context: dict[str, Any] = {"endpoint": endpoint.value}
        if symbol:
            context["symbol"] = symbol

        if isinstance(exc, httpx.HTTPStatusError):
            return ProviderError(
                f"Provider returned HTTP {exc.response.status_code}",
                context={**context, "status_code": exc.response.status_code},
            )
        if isinstance(exc, httpx.TransportError):
            return NetworkError(
                f"Provider unreachable: {exc.__class__.__name__}",
                context={**context, "error": str(exc)},
            )
        if isinstance(exc, orjson.JSONDecodeError):
            return MalformedResponseError(
                "Failed to parse provider response",
                context={**context, "error": str(exc)},
            )
        return NetworkError(
            f"Provider request failed: {exc}",
            context={**context, "error": str(exc)},
        )
