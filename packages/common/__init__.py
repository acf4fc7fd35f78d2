"""Common utilities for Codecrawl.

This package provides reusable utilities like config, logging, tracing,
and retry helpers for calls leaving the process.
"""

from packages.common.config import CodecrawlConfig, get_config
from packages.common.tracing import TracingContext, get_correlation_id

__all__ = [
    "CodecrawlConfig",
    "TracingContext",
    "get_config",
    "get_correlation_id",
]
