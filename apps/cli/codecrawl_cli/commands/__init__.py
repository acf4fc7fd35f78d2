"""Codecrawl CLI commands package.

- metrics: character/token report for a package and its files
- llmstxt: LLMs.txt generation through the Codecrawl API

Command modules are imported lazily by ``codecrawl_cli.main`` so heavy
dependencies load only for the command being run.
"""

__all__ = ["llmstxt", "metrics"]
