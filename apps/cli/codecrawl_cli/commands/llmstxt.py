"""LLMs.txt generation command for Codecrawl CLI.

Submits a generation job through CodecrawlClient and waits for it:
1. Build the client from config (CLI flags take precedence)
2. Submit and poll until completed/failed
3. Print or write llms.txt (and llms-full.txt when requested)
4. Report failures with the server's status code and message
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import typer
from rich.console import Console

from packages.clients.codecrawl import CodecrawlClient, CodecrawlError
from packages.common.config import get_config
from packages.schemas.jobs import GenerateLLMsTextParams, LLMsTextResult

console = Console(stderr=True)
logger = logging.getLogger(__name__)


def _full_text_path(out: Path) -> Path:
    return out.with_name(f"{out.stem}-full{out.suffix or '.txt'}")


async def llmstxt_command(
    url: str,
    max_urls: int | None = None,
    full: bool = False,
    api_key: str | None = None,
    api_url: str | None = None,
    out: Path | None = None,
    deadline: float | None = None,
) -> None:
    """Generate LLMs.txt for ``url`` and print or save the result.

    Raises:
        typer.Exit: Exit with code 1 if the job cannot be submitted, fails,
            or ends in an unexpected state.
    """
    config = get_config()
    overrides: dict[str, Any] = {}
    if api_key is not None:
        overrides["api_key"] = api_key
    if api_url is not None:
        overrides["api_url"] = api_url

    params = GenerateLLMsTextParams(max_urls=max_urls, show_full_text=full or None)

    try:
        console.print(f"[yellow]Starting LLMs.txt generation: {url}[/yellow]")
        async with CodecrawlClient.from_config(config, **overrides) as client:
            result = await client.generate_llmstxt(
                url,
                params,
                deadline=deadline if deadline is not None else config.job_poll_deadline,
            )
    except CodecrawlError as e:
        console.print(f"[red]✗ {e.message} (status {e.status_code})[/red]")
        logger.error(f"LLMs.txt generation failed for {url}: {e.message}")
        raise typer.Exit(1) from None

    _emit_result(result, out)


def _emit_result(result: LLMsTextResult, out: Path | None) -> None:
    if out is None:
        typer.echo(result.llmstxt)
        if result.llmsfulltxt:
            typer.echo(result.llmsfulltxt)
        return

    out.write_text(result.llmstxt, encoding="utf-8")
    console.print(f"[green]✓ Wrote {out}[/green]")
    if result.llmsfulltxt:
        full_path = _full_text_path(out)
        full_path.write_text(result.llmsfulltxt, encoding="utf-8")
        console.print(f"[green]✓ Wrote {full_path}[/green]")


# Export public API
__all__ = ["llmstxt_command"]
