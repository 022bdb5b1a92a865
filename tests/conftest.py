"""
Pytest configuration and fixtures for dashfeed tests.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Awaitable, Callable
from typing import Any, Generator
from unittest.mock import patch

import httpx
import pytest

from dashfeed.config import Settings, clear_settings_cache, get_settings
from dashfeed.data import AlphaVantageClient
from dashfeed.fallback import FallbackSynthesizer
from dashfeed.scheduler import RequestScheduler

Handler = Callable[[httpx.Request], Awaitable[httpx.Response] | httpx.Response]


class VirtualClock:
    """Deterministic time source for scheduler tests.

    `sleep` advances virtual time instead of waiting, then yields once to
    the event loop so other coroutines can run.
    """

    def __init__(self) -> None:
        self.now = 0.0

    def time(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.now += max(seconds, 0.0)
        await asyncio.sleep(0)


@pytest.fixture
def clock() -> VirtualClock:
    """Provide a virtual clock starting at t=0."""
    return VirtualClock()


@pytest.fixture
def scheduler(clock: VirtualClock) -> RequestScheduler:
    """Scheduler with the production 12s cadence on virtual time."""
    return RequestScheduler(12.0, clock=clock.time, sleep=clock.sleep)


@pytest.fixture
def mock_env_vars() -> Generator[dict[str, str], None, None]:
    """Provide mock environment variables for testing."""
    env_vars = {
        "ALPHA_VANTAGE_API_KEY": "test-av-key-123456",
        "ALPHA_VANTAGE_BASE_URL": "https://av.test/query",
        "MIN_REQUEST_INTERVAL_SECONDS": "12",
        "HTTP_TIMEOUT_SECONDS": "5",
        "FALLBACK_SEED": "7",
        "LOG_LEVEL": "DEBUG",
    }

    with patch.dict(os.environ, env_vars, clear=False):
        clear_settings_cache()
        yield env_vars


@pytest.fixture
def demo_env_vars(mock_env_vars: dict[str, str]) -> Generator[dict[str, str], None, None]:
    """Same as mock_env_vars but with the demo credential."""
    with patch.dict(os.environ, {"ALPHA_VANTAGE_API_KEY": "demo"}):
        clear_settings_cache()
        yield {**mock_env_vars, "ALPHA_VANTAGE_API_KEY": "demo"}


@pytest.fixture
def mock_settings(mock_env_vars: dict[str, str]) -> Generator[Settings, None, None]:
    """Provide a Settings instance with mock configuration."""
    clear_settings_cache()
    yield get_settings()
    clear_settings_cache()


@pytest.fixture
def make_client(
    mock_settings: Settings,
    scheduler: RequestScheduler,
) -> Callable[..., AlphaVantageClient]:
    """Factory for clients backed by an httpx mock transport."""

    def _make(
        handler: Handler,
        *,
        api_key: str = "test-av-key-123456",
        seed: int = 7,
    ) -> AlphaVantageClient:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return AlphaVantageClient(
            scheduler,
            api_key,
            synthesizer=FallbackSynthesizer(seed=seed),
            http_client=http_client,
        )

    return _make


def quote_payload(symbol: str, price: float = 189.84) -> dict[str, Any]:
    """A successful GLOBAL_QUOTE body."""
    return {
        "Global Quote": {
            "01. symbol": symbol,
            "02. open": f"{price - 1:.4f}",
            "03. high": f"{price + 2:.4f}",
            "04. low": f"{price - 2:.4f}",
            "05. price": f"{price:.4f}",
            "06. volume": "52392145",
            "07. latest trading day": "2024-05-17",
            "08. previous close": f"{price - 0.5:.4f}",
            "09. change": "0.5000",
            "10. change percent": "0.2641%",
        }
    }


def series_payload(key: str, stamps: list[str]) -> dict[str, Any]:
    """A successful time series body, newest first as the provider sends it."""
    bars = {}
    for i, stamp in enumerate(sorted(stamps, reverse=True)):
        base = 100.0 + i
        bars[stamp] = {
            "1. open": f"{base:.4f}",
            "2. high": f"{base + 1:.4f}",
            "3. low": f"{base - 1:.4f}",
            "4. close": f"{base + 0.5:.4f}",
            "5. volume": str(1000 + i),
        }
    return {"Meta Data": {"2. Symbol": "AAPL"}, key: bars}


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Automatically reset settings cache before and after each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()
