"""Metrics command for Codecrawl CLI.

Reads the given files, takes the rendered package from ``--output`` (or the
files joined by blank lines), runs calculate_metrics, and prints a summary.

This command is thin - all business logic is in packages/metrics.
"""

from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from packages.common.config import SUPPORTED_ENCODINGS, get_config
from packages.metrics.calculate_metrics import MetricsUnavailableError, calculate_metrics
from packages.metrics.formatting import format_compact
from packages.schemas.metrics import MetricsReport, ProcessedFile
from packages.tokenization.pool import shutdown_worker_pools

console = Console()
logger = logging.getLogger(__name__)


def _read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8", errors="replace")


async def metrics_command(
    files: list[Path],
    output: Path | None = None,
    encoding: str | None = None,
    top: int | None = None,
    json_output: bool = False,
) -> None:
    """Compute and display package metrics.

    Expected output:
        📊 Pack Summary
        ┏━━━━━━━━━━━━━━━━━━┳━━━━━━━━━━━━━━━━━━━━┓
        ┃ Metric           ┃ Value              ┃
        ┡━━━━━━━━━━━━━━━━━━╇━━━━━━━━━━━━━━━━━━━━┩
        │ Total Files      │ 3                  │
        │ Total Characters │ 12.3K (12,345)     │
        │ Total Tokens     │ 3.1K (3,087)       │
        └──────────────────┴────────────────────┘

    Raises:
        typer.BadParameter: If the encoding is not supported.
        typer.Exit: Exit with code 1 if a file is unreadable or metrics fail.
    """
    config = get_config()

    if encoding is not None:
        if encoding.lower() not in SUPPORTED_ENCODINGS:
            raise typer.BadParameter(
                f"Unsupported encoding {encoding!r}. "
                f"Choose from: {', '.join(sorted(SUPPORTED_ENCODINGS))}"
            )
        config = config.model_copy(update={"token_count_encoding": encoding.lower()})

    if output is not None:
        config = config.model_copy(update={"output_file_path": str(output)})

    try:
        processed_files = [ProcessedFile(path=str(path), content=_read_text(path)) for path in files]
        rendered = (
            _read_text(output)
            if output is not None
            else "\n\n".join(file.content for file in processed_files)
        )
    except OSError as e:
        console.print(f"[red]✗ Failed to read input: {e}[/red]")
        raise typer.Exit(1) from None

    try:
        logger.info(f"Calculating metrics for {len(processed_files)} files")
        report = await calculate_metrics(
            processed_files,
            rendered,
            progress_callback=lambda message: logger.debug(message),
            config=config,
        )
    except MetricsUnavailableError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(1) from None
    finally:
        shutdown_worker_pools()

    if json_output:
        typer.echo(report.model_dump_json(by_alias=True, indent=2))
        return

    _display_summary(report, config.token_count_encoding)
    _display_top_files(report, config.top_files_len if top is None else top)


def _display_summary(report: MetricsReport, encoding: str) -> None:
    """Display totals with compact and exact values."""
    table = Table(title="📊 Pack Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right", style="bold")

    table.add_row("Total Files", f"{report.total_files:,}")
    table.add_row(
        "Total Characters",
        f"{format_compact(report.total_characters)} ({report.total_characters:,})",
    )
    table.add_row(
        "Total Tokens",
        f"{format_compact(report.total_tokens)} ({report.total_tokens:,})",
    )
    table.add_row("Encoding", encoding)

    console.print(table)
    console.print()


def _display_top_files(report: MetricsReport, limit: int) -> None:
    """Display the files with the most tokens."""
    ranked = report.top_files(limit)
    if not ranked:
        return

    table = Table(title=f"📈 Top {len(ranked)} Files by Token Count")
    table.add_column("#", justify="right")
    table.add_column("File", style="cyan")
    table.add_column("Tokens", justify="right", style="bold")
    table.add_column("Chars", justify="right")

    for rank, (path, tokens) in enumerate(ranked, start=1):
        chars = report.file_char_counts.get(path, 0)
        table.add_row(str(rank), path, f"{tokens:,}", f"{chars:,}")

    console.print(table)


# Export public API
__all__ = ["metrics_command"]
