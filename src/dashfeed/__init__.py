"""Rate-limited, failure-tolerant market data layer for dashboard widgets."""

__version__ = "0.1.0"
