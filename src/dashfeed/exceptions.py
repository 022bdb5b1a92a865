"""
Custom exception hierarchy for the market data layer.

All exceptions inherit from DashfeedError, which provides optional context
for structured error handling and logging. Fetch failures carry a
FailureKind so callers can branch on the kind without string matching.
"""

from __future__ import annotations

from typing import Any

from dashfeed.types import FailureKind


class DashfeedError(Exception):
    """Base exception for all dashfeed errors.

    Attributes:
        message: Human-readable error message.
        context: Optional structured context for logging/debugging.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class ConfigurationError(DashfeedError):
    """Raised when configuration is invalid or missing.

    Examples:
        - Non-positive request interval
        - Unreadable dashboard document
    """

    pass


class FetchError(DashfeedError):
    """Raised when a provider call does not yield usable data.

    Context should include:
        - endpoint: The provider function (e.g., "GLOBAL_QUOTE")
        - symbol: The symbol being fetched, if any
        - status_code: HTTP status code if applicable
    """

    kind: FailureKind = FailureKind.PROVIDER_ERROR


class ProviderError(FetchError):
    """The provider answered with an explicit error message."""

    kind = FailureKind.PROVIDER_ERROR


class QuotaExceededError(FetchError):
    """The provider answered with a call-frequency notice."""

    kind = FailureKind.QUOTA_EXCEEDED


class DemoKeyRestrictedError(FetchError):
    """The configured credential is the demo sentinel."""

    kind = FailureKind.DEMO_KEY_RESTRICTED


class SymbolNotFoundError(FetchError):
    """The quote payload came back empty for the requested symbol."""

    kind = FailureKind.SYMBOL_NOT_FOUND


class NetworkError(FetchError):
    """The call never reached the provider (DNS, connect, timeout)."""

    kind = FailureKind.NETWORK_ERROR


class MalformedResponseError(FetchError):
    """The payload is missing the expected data or fails validation."""

    kind = FailureKind.MALFORMED_RESPONSE
