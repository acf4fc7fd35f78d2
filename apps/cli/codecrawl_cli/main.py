"""Codecrawl CLI - Typer command-line interface for package metrics and LLMs.txt jobs."""

from __future__ import annotations

import logging
from pathlib import Path

import typer

from apps.cli.codecrawl_cli.utils import async_command
from packages.common.logging import setup_logging

app = typer.Typer(
    name="codecrawl",
    help="Codecrawl CLI - Package metrics and LLMs.txt generation",
    add_completion=False,
)
logger = logging.getLogger(__name__)


@app.callback()
def main(
    log_level: str | None = typer.Option(
        None, "--log-level", help="Log level override (DEBUG, INFO, WARNING, ERROR)"
    ),
) -> None:
    """Configure JSON logging before any command runs."""
    setup_logging(log_level)


@app.command()
@async_command
async def metrics(
    files: list[Path] = typer.Argument(..., help="Processed files that make up the package"),
    output: Path | None = typer.Option(
        None, "--output", "-o", help="Rendered package file (defaults to the files joined)"
    ),
    encoding: str | None = typer.Option(
        None, "--encoding", "-e", help="Token count encoding (e.g. o200k_base, cl100k_base)"
    ),
    top: int | None = typer.Option(None, "--top", "-t", help="Number of largest files to list"),
    json_output: bool = typer.Option(False, "--json", help="Print the report as JSON"),
) -> None:
    """
    Report character and token counts for a package and its files.

    Outputs longer than the parallel threshold are tokenized in a worker pool.

    Examples:
        codecrawl metrics src/app.py src/util.py
        codecrawl metrics src/*.py --output codecrawl-output.xml --top 10
        codecrawl metrics README.md --encoding cl100k_base --json
    """
    from apps.cli.codecrawl_cli.commands.metrics import metrics_command

    await metrics_command(
        files=files, output=output, encoding=encoding, top=top, json_output=json_output
    )


@app.command()
@async_command
async def llmstxt(
    url: str = typer.Argument(..., help="Repository URL to generate LLMs.txt for"),
    max_urls: int | None = typer.Option(None, "--max-urls", help="Maximum URLs to process"),
    full: bool = typer.Option(False, "--full", help="Also generate llms-full.txt"),
    api_key: str | None = typer.Option(None, "--api-key", help="API key (overrides config)"),
    api_url: str | None = typer.Option(None, "--api-url", help="API base URL (overrides config)"),
    out: Path | None = typer.Option(
        None, "--out", help="Write llms.txt here instead of printing it"
    ),
    deadline: float | None = typer.Option(
        None, "--deadline", help="Give up polling after this many seconds"
    ),
) -> None:
    """
    Generate LLMs.txt for a repository through the Codecrawl API.

    Submits a generation job, then polls every 2 seconds until it completes or fails.

    Examples:
        codecrawl llmstxt https://github.com/owner/repo
        codecrawl llmstxt https://github.com/owner/repo --max-urls 20 --full --out llms.txt
    """
    from apps.cli.codecrawl_cli.commands.llmstxt import llmstxt_command

    await llmstxt_command(
        url=url,
        max_urls=max_urls,
        full=full,
        api_key=api_key,
        api_url=api_url,
        out=out,
        deadline=deadline,
    )


if __name__ == "__main__":
    app()
