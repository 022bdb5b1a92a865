"""
Structured logging for the market data layer.

Records carry two structured attributes: `context`, a snapshot of the
request, endpoint and symbol being worked on, and `fields`, the keyword
arguments given to the log call. The rich console handler prints both
inline; the JSON-lines file handler writes them as top-level keys and a
`fields` object.
"""

from __future__ import annotations

import logging
from collections.abc import MutableMapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator

import orjson
from rich.console import Console, ConsoleRenderable
from rich.logging import RichHandler
from rich.markup import escape

# Context variables for structured logging
_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
_endpoint_var: ContextVar[str | None] = ContextVar("endpoint", default=None)
_symbol_var: ContextVar[str | None] = ContextVar("symbol", default=None)


def get_request_id() -> str | None:
    """Get the current request ID from context."""
    return _request_id_var.get()


def get_endpoint() -> str | None:
    """Get the current provider endpoint from context."""
    return _endpoint_var.get()


def get_symbol() -> str | None:
    """Get the current symbol from context."""
    return _symbol_var.get()


def _context_fields() -> dict[str, str]:
    fields: dict[str, str] = {}
    request_id = get_request_id()
    endpoint = get_endpoint()
    symbol = get_symbol()
    if request_id:
        fields["request_id"] = request_id
    if endpoint:
        fields["endpoint"] = endpoint
    if symbol:
        fields["symbol"] = symbol
    return fields


@contextmanager
def log_context(
    request_id: str | None = None,
    endpoint: str | None = None,
    symbol: str | None = None,
) -> Generator[None, None, None]:
    """Context manager for scoped logging context.

    Args:
        request_id: Scheduler request ID to set in context.
        endpoint: Provider endpoint to set in context.
        symbol: Symbol to set in context.

    Yields:
        None. Context variables are set for the duration of the context.
    """
    old_request_id = _request_id_var.get()
    old_endpoint = _endpoint_var.get()
    old_symbol = _symbol_var.get()

    try:
        if request_id is not None:
            _request_id_var.set(request_id)
        if endpoint is not None:
            _endpoint_var.set(endpoint)
        if symbol is not None:
            _symbol_var.set(symbol)
        yield
    finally:
        _request_id_var.set(old_request_id)
        _endpoint_var.set(old_endpoint)
        _symbol_var.set(old_symbol)


# Keyword arguments the logging API handles itself
_RESERVED_KWARGS = ("exc_info", "stack_info", "stacklevel", "extra")


class JSONFormatter(logging.Formatter):
    """One JSON object per line.

    Request context (`request_id`, `endpoint`, `symbol`) sits at the top
    level so lines can be grouped per provider call; keyword fields passed
    to the logger go under `fields`.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_obj: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_obj.update(getattr(record, "context", None) or _context_fields())

        fields = getattr(record, "fields", None)
        if fields:
            log_obj["fields"] = fields
        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return orjson.dumps(log_obj, default=str).decode()


class ContextRichHandler(RichHandler):
    """Rich handler that prefixes the request context and appends fields."""

    def render_message(self, record: logging.LogRecord, message: str) -> ConsoleRenderable:
        context = getattr(record, "context", None) or _context_fields()
        fields = getattr(record, "fields", None)

        prefix: list[str] = []
        if "request_id" in context:
            # Tail of a UUID7 is the random part
            prefix.append(f"[dim]{escape(context['request_id'][-8:])}[/dim]")
        if "endpoint" in context:
            prefix.append(f"[cyan]{escape(context['endpoint'])}[/cyan]")
        if "symbol" in context:
            prefix.append(f"[magenta]{escape(context['symbol'])}[/magenta]")
        if prefix:
            message = f"{' '.join(prefix)} {message}"

        if fields:
            pairs = " ".join(f"{key}={value}" for key, value in fields.items())
            message = f"{message} [dim]{escape(pairs)}[/dim]"
        return super().render_message(record, message)


class ContextLogger(logging.LoggerAdapter):
    """Logger adapter taking structured fields as keyword arguments.

    `logger.info("Dispatching request", pending=3)` stores `{"pending": 3}`
    on the record as `fields`, together with a snapshot of the current
    request context taken when the call is made.
    """

    def __init__(self, logger: logging.Logger) -> None:
        super().__init__(logger, {})

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        fields = {key: kwargs.pop(key) for key in list(kwargs) if key not in _RESERVED_KWARGS}
        extra = dict(kwargs.pop("extra", None) or {})
        extra["fields"] = fields
        extra["context"] = _context_fields()
        kwargs["extra"] = extra
        return msg, kwargs


_console: Console | None = None
_setup_done: bool = False


def get_console() -> Console:
    """Get the global rich console."""
    global _console
    if _console is None:
        _console = Console(stderr=True)
    return _console


def setup_logging(
    log_level: str = "INFO",
    log_file: Path | None = None,
    console_output: bool = True,
) -> None:
    """Configure the `dashfeed` logger.

    Args:
        log_level: Level for the logger and the console handler.
        log_file: JSON-lines file receiving every record at DEBUG and above.
        console_output: Whether to log to stderr through rich.
    """
    global _setup_done

    level = logging.getLevelName(log_level.upper())
    package_logger = logging.getLogger("dashfeed")
    package_logger.setLevel(level)
    package_logger.handlers.clear()
    package_logger.propagate = False

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(JSONFormatter())
        file_handler.setLevel(logging.DEBUG)
        package_logger.addHandler(file_handler)

    if console_output:
        rich_handler = ContextRichHandler(
            console=get_console(),
            show_path=False,
            rich_tracebacks=True,
            markup=True,
        )
        rich_handler.setLevel(level)
        package_logger.addHandler(rich_handler)

    # httpx logs each request at INFO
    for noisy_logger in ("httpx", "httpcore", "asyncio"):
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)

    _setup_done = True


def get_logger(name: str) -> ContextLogger:
    """Get a context-aware logger under the `dashfeed` namespace."""
    if not _setup_done:
        setup_logging()

    if name != "dashfeed" and not name.startswith("dashfeed."):
        name = f"dashfeed.{name}"
    return ContextLogger(logging.getLogger(name))
