"""Worker entry point for output token counting.

Runs inside pool workers. Each worker keeps one EncoderRegistry, created by
``initialize_worker`` and released when the worker process exits.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from multiprocessing.util import Finalize

from packages.tokenization.counter import EncoderFactory
from packages.tokenization.registry import EncoderRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutputMetricsTask:
    """A content fragment to count: text, encoding, and an optional label."""

    content: str
    encoding: str
    label: str | None = None


_worker_registry: EncoderRegistry | None = None
_worker_lock = threading.Lock()


def initialize_worker(encoder_factory: EncoderFactory | None = None) -> EncoderRegistry:
    """Install the worker-local registry and return it. Runs once per worker.

    Thread pools call initializers once per thread; only the first call
    installs a registry, later calls return the installed one.
    """
    global _worker_registry
    with _worker_lock:
        if _worker_registry is None:
            _worker_registry = EncoderRegistry(encoder_factory)
            # Runs on worker teardown (multiprocessing exit hook, atexit in the parent)
            Finalize(None, release_worker_registry, exitpriority=10)
        return _worker_registry


def release_worker_registry() -> None:
    """Release the worker-local registry, if any."""
    global _worker_registry
    with _worker_lock:
        registry, _worker_registry = _worker_registry, None
    if registry is not None:
        registry.release_all()


def count_output_tokens(task: OutputMetricsTask) -> int:
    """Count the tokens of one fragment with the worker's counter."""
    started = time.perf_counter()
    counter = initialize_worker().get(task.encoding)
    token_count = counter.count_tokens(task.content, task.label)

    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.debug(f"Counted output tokens. Count: {token_count}. Took: {elapsed_ms:.2f}ms")
    return token_count


__all__ = [
    "OutputMetricsTask",
    "count_output_tokens",
    "initialize_worker",
    "release_worker_registry",
]
