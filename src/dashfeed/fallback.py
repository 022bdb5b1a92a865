"""
Synthetic substitute data for failed or skipped provider calls.

Output has the same shape as live results so callers never need to know
where a value came from. Randomness comes from an injected random.Random,
so a fixed seed reproduces the same data.
"""

from __future__ import annotations

import random
from datetime import datetime, timedelta

from dashfeed.types import GainerEntry, HistoricalPoint, SearchMatch, Series

DEFAULT_SERIES_LENGTH = 31
BASE_PRICE = 150.0
# Closes never drop below this
PRICE_FLOOR = 50.0
MAX_STEP = 5.0
MAX_WICK = 5.0
MAX_OPEN_GAP = 1.5

REFERENCE_SYMBOLS: tuple[str, ...] = (
    "AAPL", "GOOGL", "MSFT", "AMZN", "TSLA", "NVDA", "META", "NFLX", "AMD", "CRM",
)

MOCK_DIRECTORY: tuple[tuple[str, str], ...] = (
    ("AAPL", "Apple Inc."),
    ("GOOGL", "Alphabet Inc."),
    ("MSFT", "Microsoft Corporation"),
    ("AMZN", "Amazon.com Inc."),
    ("TSLA", "Tesla Inc."),
)

DAY_FORMAT = "%Y-%m-%d"
INTRADAY_FORMAT = "%Y-%m-%d %H:%M:%S"


class FallbackSynthesizer:
    """Generate schema-valid, non-authoritative market data."""

    def __init__(self, rng: random.Random | None = None, *, seed: int | None = None) -> None:
        """Initialize the synthesizer.

        Args:
            rng: Random source to draw from. Takes precedence over seed.
            seed: Seed for a fresh random source.
        """
        self.rng = rng or random.Random(seed)

    def synthetic_series(
        self,
        count: int = DEFAULT_SERIES_LENGTH,
        *,
        base_price: float = BASE_PRICE,
        step: timedelta = timedelta(days=1),
        end: datetime | None = None,
    ) -> Series:
        """Build a random-walk OHLCV series ordered oldest to newest.

        Args:
            count: Number of points.
            base_price: Starting price of the walk.
            step: Spacing between consecutive points. Sub-day steps produce
                intraday timestamps, otherwise plain dates.
            end: Timestamp of the newest point. Defaults to now.

        Returns:
            Tuple of points satisfying low <= open, close <= high, all > 0.
        """
        end = end or datetime.now()
        fmt = INTRADAY_FORMAT if step < timedelta(days=1) else DAY_FORMAT
        rng = self.rng

        points: list[HistoricalPoint] = []
        price = base_price
        for i in range(count - 1, -1, -1):
            price = max(price + rng.uniform(-MAX_STEP, MAX_STEP), PRICE_FLOOR)
            open_ = max(price + rng.uniform(-MAX_OPEN_GAP, MAX_OPEN_GAP), PRICE_FLOOR)
            high = max(open_, price) + rng.uniform(0, MAX_WICK)
            low = min(open_, price) - rng.uniform(0, MAX_WICK)

            points.append(
                HistoricalPoint(
                    date=(end - step * i).strftime(fmt),
                    open=open_,
                    high=high,
                    low=low,
                    close=price,
                    volume=rng.randrange(100_000, 1_100_000),
                )
            )

        return tuple(points)

    def synthetic_gainers(
        self, symbols: tuple[str, ...] = REFERENCE_SYMBOLS
    ) -> list[GainerEntry]:
        """One positive-change entry per reference symbol."""
        rng = self.rng
        return [
            GainerEntry(
                ticker=ticker,
                price=round(100 + rng.random() * 200, 2),
                change_amount=round(rng.random() * 10 + 1, 2),
                change_percentage=round(rng.random() * 8 + 2, 2),
            )
            for ticker in symbols
        ]

    def synthetic_search(self, query: str) -> list[SearchMatch]:
        """Case-insensitive substring match over the mock directory."""
        needle = query.strip().lower()
        return [
            SearchMatch(
                symbol=symbol,
                name=name,
                type="Equity",
                region="United States",
                match_score=1.0,
            )
            for symbol, name in MOCK_DIRECTORY
            if needle in symbol.lower() or needle in name.lower()
        ]
