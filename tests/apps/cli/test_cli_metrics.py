"""Tests for the metrics CLI command.

The command should:
1. Count characters and tokens for the given files and rendered output
2. Print a summary table, or the report as JSON with --json
3. Reject unsupported encodings
4. Exit with code 1 on unreadable input or failed metrics
"""

import json
import logging
import math
from collections.abc import Iterator
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from pytest_mock import MockerFixture
from typer.testing import CliRunner

from apps.cli.main import app
from packages.metrics.calculate_metrics import MetricsUnavailableError
from packages.tokenization.registry import EncoderRegistry


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide Typer CLI test runner.

    Returns:
        CliRunner: Typer test runner instance.
    """
    return CliRunner()


@pytest.fixture(autouse=True)
def restore_root_logger() -> Iterator[None]:
    """Undo the JSON handler installed by the CLI callback."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def source_files(tmp_path: Path) -> list[Path]:
    """Two source files of known length."""
    big = tmp_path / "big.py"
    big.write_text("a" * 400, encoding="utf-8")
    small = tmp_path / "small.py"
    small.write_text("b" * 40, encoding="utf-8")
    return [big, small]


@pytest.mark.unit
class TestMetricsCommand:
    """codecrawl metrics."""

    def test_json_report(
        self,
        cli_runner: CliRunner,
        source_files: list[Path],
        default_fake_registry: EncoderRegistry,
    ) -> None:
        result = cli_runner.invoke(
            app,
            ["--log-level", "CRITICAL", "metrics", *map(str, source_files), "--json"],
        )

        assert result.exit_code == 0, result.output
        report = json.loads(result.stdout)
        rendered_length = 400 + 2 + 40
        assert report["totalFiles"] == 2
        assert report["totalCharacters"] == rendered_length
        assert report["totalTokens"] == math.ceil(rendered_length / 4)
        assert report["fileTokenCounts"] == {str(source_files[0]): 100, str(source_files[1]): 10}
        assert report["fileCharCounts"][str(source_files[1])] == 40

    def test_rendered_output_file(
        self,
        cli_runner: CliRunner,
        source_files: list[Path],
        tmp_path: Path,
        default_fake_registry: EncoderRegistry,
    ) -> None:
        rendered = tmp_path / "codecrawl-output.xml"
        rendered.write_text("x" * 1000, encoding="utf-8")

        result = cli_runner.invoke(
            app,
            [
                "--log-level",
                "CRITICAL",
                "metrics",
                *map(str, source_files),
                "--output",
                str(rendered),
                "--json",
            ],
        )

        assert result.exit_code == 0, result.output
        report = json.loads(result.stdout)
        assert report["totalCharacters"] == 1000
        assert report["totalTokens"] == 250

    def test_summary_table(
        self,
        cli_runner: CliRunner,
        source_files: list[Path],
        default_fake_registry: EncoderRegistry,
    ) -> None:
        result = cli_runner.invoke(
            app, ["--log-level", "CRITICAL", "metrics", *map(str, source_files), "--top", "1"]
        )

        assert result.exit_code == 0, result.output
        assert "Pack Summary" in result.stdout
        assert "Total Tokens" in result.stdout
        assert "Top 1 Files by Token Count" in result.stdout

    def test_encoding_override(
        self,
        cli_runner: CliRunner,
        source_files: list[Path],
        default_fake_registry: EncoderRegistry,
    ) -> None:
        result = cli_runner.invoke(
            app,
            [
                "--log-level",
                "CRITICAL",
                "metrics",
                str(source_files[0]),
                "-e",
                "CL100K_BASE",
                "--json",
            ],
        )

        assert result.exit_code == 0, result.output
        assert "cl100k_base" in default_fake_registry

    def test_unsupported_encoding(self, cli_runner: CliRunner, source_files: list[Path]) -> None:
        result = cli_runner.invoke(
            app, ["--log-level", "CRITICAL", "metrics", str(source_files[0]), "-e", "bogus"]
        )

        assert result.exit_code == 2

    def test_missing_file_exits_1(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        result = cli_runner.invoke(
            app, ["--log-level", "CRITICAL", "metrics", str(tmp_path / "missing.py")]
        )

        assert result.exit_code == 1
        assert "Failed to read input" in result.output

    def test_metrics_failure_exits_1(
        self, cli_runner: CliRunner, source_files: list[Path], mocker: MockerFixture
    ) -> None:
        failing = mocker.patch(
            "apps.cli.codecrawl_cli.commands.metrics.calculate_metrics",
            new_callable=AsyncMock,
            side_effect=MetricsUnavailableError("Metrics unavailable: boom"),
        )

        result = cli_runner.invoke(
            app, ["--log-level", "CRITICAL", "metrics", *map(str, source_files)]
        )

        assert result.exit_code == 1
        assert "Metrics unavailable: boom" in result.output
        failing.assert_awaited_once()

    def test_worker_pools_shut_down_after_run(
        self,
        cli_runner: CliRunner,
        source_files: list[Path],
        default_fake_registry: EncoderRegistry,
    ) -> None:
        with patch("apps.cli.codecrawl_cli.commands.metrics.shutdown_worker_pools") as shutdown:
            result = cli_runner.invoke(
                app, ["--log-level", "CRITICAL", "metrics", str(source_files[0]), "--json"]
            )

        assert result.exit_code == 0, result.output
        shutdown.assert_called_once_with()
