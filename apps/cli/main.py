"""Entry module exposing the CLI Typer app under ``apps.cli``.

Tests and the ``codecrawl`` console script import ``apps.cli.main:app``;
the implementation lives in ``codecrawl_cli``.
"""

from __future__ import annotations

from apps.cli.codecrawl_cli.main import app

__all__ = ["app"]
