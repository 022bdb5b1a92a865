"""
Data fetching package.

This package handles fetching data from the market data provider:
- Alpha Vantage query API (quotes, series, gainers, search)
- Normalization of raw payloads into domain values
"""

from dashfeed.data.alpha_vantage import MAX_WATCHLIST_SYMBOLS, AlphaVantageClient

__all__ = [
    "MAX_WATCHLIST_SYMBOLS",
    "AlphaVantageClient",
]
