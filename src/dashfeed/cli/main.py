"""
CLI for the dashboard market data layer.

Commands:
    dashfeed quote SYMBOL - Fetch a real-time quote
    dashfeed watchlist SYMBOLS... - Fetch up to five quotes
    dashfeed series SYMBOL - Fetch an intraday or daily series
    dashfeed gainers - List top gainers
    dashfeed search KEYWORDS - Search symbols
    dashfeed dashboard FILE - Load every widget of an exported dashboard
    dashfeed config - Show current configuration
    dashfeed version - Print version
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Annotated, Optional, TypeVar

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from dashfeed import __version__
from dashfeed.config import Settings, clear_settings_cache, get_settings
from dashfeed.dashboard import WidgetData, load_dashboard, load_dashboard_file
from dashfeed.data import AlphaVantageClient
from dashfeed.exceptions import ConfigurationError, FetchError
from dashfeed.logging import setup_logging
from dashfeed.scheduler import RequestScheduler
from dashfeed.types import GainerEntry, QuoteResult, SearchMatch, Series
from dashfeed.utils.dates import CHART_PERIODS, filter_series_by_period
from dashfeed.utils.formatting import format_change, format_currency, format_number
from dashfeed.utils.symbols import parse_symbol_list

T = TypeVar("T")

app = typer.Typer(
    name="dashfeed",
    help="Dashfeed - rate-limited market data for dashboard widgets",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)


def _get_settings_safe() -> Settings | None:
    """Get settings, returning None if configuration is invalid."""
    try:
        clear_settings_cache()
        return get_settings()
    except Exception:
        return None


def _run(operation: Callable[[AlphaVantageClient], Awaitable[T]]) -> T:
    """Run one operation against a fresh scheduler and client."""
    settings = _get_settings_safe()
    if settings is None:
        error_console.print(
            "[red]Error:[/red] Configuration is invalid. "
            "Run 'dashfeed config' to see the current values."
        )
        raise typer.Exit(1)

    setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)

    async def _main() -> T:
        scheduler = RequestScheduler(settings.MIN_REQUEST_INTERVAL_SECONDS)
        async with AlphaVantageClient(scheduler) as client:
            try:
                return await operation(client)
            finally:
                await scheduler.aclose()

    return asyncio.run(_main())


def _quote_table(title: str, quotes: list[QuoteResult], limit: int | None = None) -> Table:
    table = Table(title=title, show_header=True)
    table.add_column("Symbol", style="cyan")
    table.add_column("Price", justify="right")
    table.add_column("Change", justify="right")
    table.add_column("Change %", justify="right")
    table.add_column("Volume", justify="right")
    table.add_column("Updated", style="dim")

    for quote in quotes[:limit]:
        change = format_change(quote.change, quote.change_percent)
        table.add_row(
            quote.symbol,
            format_currency(quote.price),
            f"[{change.style}]{change.change}[/{change.style}]",
            f"[{change.style}]{change.change_percent}[/{change.style}]",
            format_number(quote.volume) if quote.volume is not None else "-",
            quote.last_updated,
        )
    return table


def _series_table(title: str, series: Series) -> Table:
    table = Table(title=title, show_header=True)
    table.add_column("Date", style="cyan")
    for column in ("Open", "High", "Low", "Close"):
        table.add_column(column, justify="right")
    table.add_column("Volume", justify="right")

    for point in series:
        table.add_row(
            point.date,
            format_currency(point.open),
            format_currency(point.high),
            format_currency(point.low),
            format_currency(point.close),
            format_number(point.volume),
        )
    return table


def _gainers_table(title: str, gainers: list[GainerEntry]) -> Table:
    table = Table(title=title, show_header=True)
    table.add_column("Ticker", style="cyan")
    table.add_column("Price", justify="right")
    table.add_column("Change", justify="right", style="green")
    table.add_column("Change %", justify="right", style="green")

    for gainer in gainers:
        change = format_change(gainer.change_amount, gainer.change_percentage)
        table.add_row(
            gainer.ticker,
            format_currency(gainer.price),
            change.change,
            change.change_percent,
        )
    return table


def _search_table(keywords: str, matches: list[SearchMatch]) -> Table:
    table = Table(title=f"Matches for {keywords!r}", show_header=True)
    table.add_column("Symbol", style="cyan")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Region")
    table.add_column("Score", justify="right")

    for match in matches:
        table.add_row(match.symbol, match.name, match.type, match.region, f"{match.match_score:.4f}")
    return table


@app.command()
def quote(
    symbol: Annotated[str, typer.Argument(help="Stock ticker symbol (e.g., AAPL)")],
) -> None:
    """Fetch a real-time quote for a symbol."""
    try:
        result = _run(lambda client: client.get_quote(symbol))
    except FetchError as e:
        error_console.print(f"[red]Error ({e.kind.value}):[/red] {e.message}")
        error_console.print("[dim]Run the command again to retry.[/dim]")
        raise typer.Exit(1)

    change = format_change(result.change, result.change_percent)
    console.print(
        Panel(
            f"[bold]Price:[/bold] {format_currency(result.price)}\n"
            f"[bold]Change:[/bold] [{change.style}]{change.change} "
            f"({change.change_percent})[/{change.style}]\n"
            f"[bold]Open:[/bold] {format_currency(result.open)}  "
            f"[bold]High:[/bold] {format_currency(result.high)}  "
            f"[bold]Low:[/bold] {format_currency(result.low)}\n"
            f"[bold]Previous Close:[/bold] {format_currency(result.previous_close)}\n"
            f"[bold]Volume:[/bold] {format_number(result.volume or 0)}\n"
            f"[dim]Last trading day: {result.last_updated}[/dim]",
            title=f"[bold cyan]{result.symbol}[/bold cyan]",
            border_style="cyan",
        )
    )


@app.command()
def watchlist(
    symbols: Annotated[list[str], typer.Argument(help="Up to five ticker symbols")],
) -> None:
    """Fetch quotes for a watchlist, skipping symbols that fail."""
    parsed = parse_symbol_list(" ".join(symbols))
    quotes = _run(lambda client: client.get_quotes(parsed))
    if not quotes:
        error_console.print("[yellow]No quotes available for this watchlist.[/yellow]")
        raise typer.Exit(1)
    console.print(_quote_table("Watchlist", quotes))


@app.command()
def series(
    symbol: Annotated[str, typer.Argument(help="Stock ticker symbol (e.g., AAPL)")],
    interval: Annotated[
        str,
        typer.Option("--interval", "-i", help="Intraday bar size (1min, 5min, 15min, 30min, 60min)"),
    ] = "5min",
    daily: Annotated[
        bool,
        typer.Option("--daily", "-d", help="Fetch daily bars instead of intraday"),
    ] = False,
    period: Annotated[
        Optional[str],
        typer.Option("--period", "-p", help="Trim daily bars to 1W, 1M, 3M or 1Y"),
    ] = None,
    rows: Annotated[
        int,
        typer.Option("--rows", "-n", help="Number of most recent bars to print"),
    ] = 10,
) -> None:
    """Fetch an intraday or daily price series."""
    if period is not None and period not in CHART_PERIODS:
        error_console.print(f"[red]Error:[/red] period must be one of {', '.join(CHART_PERIODS)}")
        raise typer.Exit(2)

    if daily or period not in (None, "1D"):
        bars = _run(lambda client: client.get_daily_series(symbol))
        if period:
            bars = filter_series_by_period(bars, period)
        title = f"{symbol.upper()} daily"
    else:
        try:
            bars = _run(lambda client: client.get_intraday_series(symbol, interval))
        except ValueError as e:
            error_console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(2)
        title = f"{symbol.upper()} intraday ({interval})"

    console.print(_series_table(f"{title} - {len(bars)} bars", bars[-rows:]))


@app.command()
def gainers() -> None:
    """List today's top gainers."""
    entries = _run(lambda client: client.get_market_gainers())
    console.print(_gainers_table("Top Gainers", entries))


@app.command()
def search(
    keywords: Annotated[str, typer.Argument(help="Company name or symbol fragment")],
) -> None:
    """Search for ticker symbols."""
    matches = _run(lambda client: client.search_symbols(keywords))
    if not matches:
        console.print(f"[yellow]No matches for {keywords!r}.[/yellow]")
        return
    console.print(_search_table(keywords, matches))


def _render_widget(data: WidgetData) -> None:
    widget = data.widget
    if data.error is not None:
        error_console.print(
            Panel(
                f"[red]{data.error.message}[/red]\n[dim]Retry to queue the request again.[/dim]",
                title=f"[bold]{widget.title}[/bold]",
                border_style="red",
            )
        )
    elif data.series:
        console.print(_series_table(f"{widget.title} ({widget.period})", data.series[-widget.page_size:]))
    elif data.gainers:
        console.print(_gainers_table(widget.title, data.gainers))
    else:
        console.print(_quote_table(widget.title, data.quotes, limit=widget.page_size))


@app.command()
def dashboard(
    path: Annotated[Path, typer.Argument(help="Exported dashboard JSON document")],
) -> None:
    """Load data for every widget in an exported dashboard.

    All widgets share one scheduler, so requests are spaced by the
    configured interval no matter how many widgets there are.
    """
    try:
        widgets = load_dashboard_file(path)
    except ConfigurationError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if not widgets:
        console.print("[yellow]Dashboard has no widgets.[/yellow]")
        return

    results = _run(lambda client: load_dashboard(client, widgets))
    for data in results:
        _render_widget(data)
        console.print()


@app.command()
def config() -> None:
    """Show current configuration.

    Displays all configuration values with API keys redacted.
    """
    console.print()
    console.print("[bold]Dashfeed Configuration[/bold]")
    console.print()

    settings = _get_settings_safe()

    if settings is None:
        error_console.print("[red]Configuration is invalid.[/red]")
        error_console.print()
        error_console.print("Check ALPHA_VANTAGE_API_KEY, MIN_REQUEST_INTERVAL_SECONDS")
        error_console.print("and HTTP_TIMEOUT_SECONDS in your environment or .env file.")
        raise typer.Exit(1)

    table = Table(title="Settings", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    for key, value in settings.redacted_display().items():
        display_value = str(value) if value is not None else "[dim]not set[/dim]"
        table.add_row(key, display_value)

    console.print(table)

    console.print()
    if settings.is_demo_key:
        console.print(
            "[yellow]Demo API key in use:[/yellow] quotes are rejected and other "
            "endpoints serve synthetic data."
        )
    console.print()


@app.command()
def version() -> None:
    """Print the version number."""
    console.print(f"dashfeed version {__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
