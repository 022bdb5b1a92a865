"""
Tests for the command line interface.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, patch

import orjson
from typer.testing import CliRunner

from dashfeed import __version__
from dashfeed.cli.main import app
from dashfeed.exceptions import QuotaExceededError
from dashfeed.scheduler import RequestScheduler

runner = CliRunner()


def test_version() -> None:
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_config_redacts_key(mock_env_vars: dict[str, str]) -> None:
    result = runner.invoke(app, ["config"])

    assert result.exit_code == 0
    assert "test...56" in result.stdout
    assert "test-av-key-123456" not in result.stdout


def test_config_flags_demo_key(demo_env_vars: dict[str, str]) -> None:
    result = runner.invoke(app, ["config"])

    assert result.exit_code == 0
    assert "Demo API key in use" in result.stdout


def test_search_with_demo_key(demo_env_vars: dict[str, str]) -> None:
    """The demo key answers searches from the mock directory."""
    result = runner.invoke(app, ["search", "tesla"])

    assert result.exit_code == 0
    assert "TSLA" in result.stdout


def test_gainers_with_demo_key(demo_env_vars: dict[str, str]) -> None:
    result = runner.invoke(app, ["gainers"])

    assert result.exit_code == 0
    assert "NVDA" in result.stdout


def test_series_rejects_unknown_period(demo_env_vars: dict[str, str]) -> None:
    result = runner.invoke(app, ["series", "AAPL", "--period", "5Y"])

    assert result.exit_code == 2


def test_series_with_demo_key(demo_env_vars: dict[str, str]) -> None:
    result = runner.invoke(app, ["series", "AAPL", "--daily", "--rows", "3"])

    assert result.exit_code == 0
    assert "31 bars" in result.stdout


def test_quote_failure_offers_retry(mock_env_vars: dict[str, str]) -> None:
    with patch("dashfeed.cli.main._run", side_effect=QuotaExceededError("slow down")):
        result = runner.invoke(app, ["quote", "AAPL"])

    assert result.exit_code == 1
    assert "quota_exceeded" in result.output
    assert "retry" in result.output


def test_dashboard_with_bad_file(tmp_path: Path, demo_env_vars: dict[str, str]) -> None:
    path = tmp_path / "dashboard.json"
    path.write_text("{not json")

    result = runner.invoke(app, ["dashboard", str(path)])

    assert result.exit_code == 1


def test_dashboard_with_demo_key(tmp_path: Path, demo_env_vars: dict[str, str]) -> None:
    """Charts and gainers cards render without any provider call."""
    document = {
        "widgets": [
            {"id": "g", "type": "finance-card", "title": "Movers", "config": {"variant": "gainers"}},
            {"id": "c", "type": "line-chart", "title": "Apple", "config": {"symbol": "AAPL"}},
        ]
    }
    path = tmp_path / "dashboard.json"
    path.write_bytes(orjson.dumps(document))

    result = runner.invoke(app, ["dashboard", str(path)])

    assert result.exit_code == 0
    assert "Movers" in result.stdout
    assert "Apple" in result.stdout


def test_commands_wait_for_the_queue_before_exit(demo_env_vars: dict[str, str]) -> None:
    with patch.object(RequestScheduler, "aclose", new_callable=AsyncMock) as aclose:
        result = runner.invoke(app, ["gainers"])

    assert result.exit_code == 0
    assert aclose.await_count == 1
