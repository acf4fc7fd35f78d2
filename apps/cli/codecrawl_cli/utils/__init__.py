"""Shared helpers for Codecrawl CLI commands."""

from apps.cli.codecrawl_cli.utils.async_wrapper import async_command

__all__ = ["async_command"]
