"""Async command wrapper for Typer CLI.

Typer invokes commands synchronously; metrics aggregation and job polling are
coroutines. The decorator runs a command coroutine in a fresh event loop.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from functools import wraps
from typing import Any


def async_command(func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator to wrap async commands for Typer CLI.

    Usage:
        @app.command()
        @async_command
        async def llmstxt(url: str) -> None:
            await llmstxt_command(url=url)

    Args:
        func: Async function to wrap.

    Returns:
        Synchronous wrapper function that executes the async function.
    """

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        return asyncio.run(func(*args, **kwargs))

    return wrapper


__all__ = ["async_command"]
