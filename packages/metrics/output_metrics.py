"""Output-level token counting.

Small outputs are counted inline. Outputs longer than the parallel threshold
are split into contiguous chunks that are counted in a worker pool and summed.

A token spanning a chunk boundary is counted once per side, so the parallel
total can exceed a single-pass count by at most one token per boundary. This
approximation is accepted in exchange for throughput.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time

from packages.metrics.workers.output_metrics_worker import (
    OutputMetricsTask,
    count_output_tokens,
    initialize_worker,
)
from packages.tokenization.counter import EncoderFactory
from packages.tokenization.pool import WorkerPoolScheduler, get_worker_pool_scheduler
from packages.tokenization.registry import EncoderRegistry, get_encoder_registry

logger = logging.getLogger(__name__)

# Number of chunks a large output is split into
CHUNK_COUNT = 1000
# Outputs up to this many characters are counted inline
PARALLEL_THRESHOLD = 1_000_000

OUTPUT_METRICS_TASK_KIND = "output_metrics"


def split_into_chunks(content: str, chunk_count: int) -> list[str]:
    """Split ``content`` into at most ``chunk_count`` contiguous chunks.

    Every chunk has ``ceil(len(content) / chunk_count)`` characters except
    possibly the last one, which takes the remainder.

    Raises:
        ValueError: If chunk_count < 1.
    """
    if chunk_count < 1:
        raise ValueError("chunk_count must be >= 1")
    if not content:
        return []

    chunk_size = math.ceil(len(content) / chunk_count)
    return [content[i : i + chunk_size] for i in range(0, len(content), chunk_size)]


def _chunk_label(label: str | None, index: int) -> str | None:
    return f"{label}-chunk-{index}" if label else None


async def calculate_output_metrics(
    content: str,
    encoding: str,
    label: str | None = None,
    *,
    scheduler: WorkerPoolScheduler | None = None,
    registry: EncoderRegistry | None = None,
    encoder_factory: EncoderFactory | None = None,
    parallel_threshold: int = PARALLEL_THRESHOLD,
    chunk_count: int = CHUNK_COUNT,
) -> int:
    """Count the tokens of the rendered output.

    Args:
        content: Rendered output text.
        encoding: tiktoken encoding name.
        label: Output path or name, used in logs and chunk labels.
        scheduler: Worker pool scheduler (defaults to the process-wide one).
        registry: Registry for inline counting (defaults to the process-wide one).
        encoder_factory: Encoder factory handed to pool workers at startup.
        parallel_threshold: Length above which counting runs in the pool.
        chunk_count: Number of chunks (and pool concurrency) for parallel counting.

    Returns:
        int: Total token count.

    Raises:
        Exception: Whatever a worker task raised; no partial total is returned.
    """
    should_run_in_parallel = len(content) > parallel_threshold

    logger.info(f"Starting output token count for {label or 'output'}")
    started = time.perf_counter()

    try:
        if should_run_in_parallel:
            pool_scheduler = scheduler if scheduler is not None else get_worker_pool_scheduler()
            run_task = pool_scheduler.initialize(
                OUTPUT_METRICS_TASK_KIND,
                chunk_count,
                count_output_tokens,
                initializer=initialize_worker,
                initargs=(encoder_factory,),
            )
            chunks = split_into_chunks(content, chunk_count)
            chunk_results = await asyncio.gather(
                *(
                    run_task(
                        OutputMetricsTask(
                            content=chunk, encoding=encoding, label=_chunk_label(label, index)
                        )
                    )
                    for index, chunk in enumerate(chunks)
                )
            )
            result = sum(chunk_results)
        else:
            counter = (registry if registry is not None else get_encoder_registry()).get(encoding)
            result = await asyncio.to_thread(counter.count_tokens, content, label)
    except Exception:
        logger.exception(f"Error during token count for {label or 'output'}")
        raise

    duration_ms = (time.perf_counter() - started) * 1000
    logger.info(f"Output token count completed in {duration_ms:.2f}ms")
    return result


__all__ = [
    "CHUNK_COUNT",
    "OUTPUT_METRICS_TASK_KIND",
    "PARALLEL_THRESHOLD",
    "calculate_output_metrics",
    "split_into_chunks",
]
