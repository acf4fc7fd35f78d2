"""Metrics aggregation for a packaged output.

Runs per-file metrics and the output-level token count concurrently and
merges them into one MetricsReport. Either both succeed or the whole call
fails with MetricsUnavailableError; no partial report is produced.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any

from packages.common.config import CodecrawlConfig, get_config
from packages.common.tracing import TracingContext
from packages.metrics.file_metrics import ProgressCallback, calculate_all_file_metrics
from packages.metrics.output_metrics import calculate_output_metrics
from packages.schemas.metrics import FileMetrics, MetricsReport, ProcessedFile

logger = logging.getLogger(__name__)


class MetricsUnavailableError(Exception):
    """Raised when metrics could not be computed for an output."""


@dataclass(frozen=True)
class MetricsDeps:
    """Collaborators of calculate_metrics, replaceable in tests."""

    calculate_all_file_metrics: Callable[..., Awaitable[list[FileMetrics]]] = (
        calculate_all_file_metrics
    )
    calculate_output_metrics: Callable[..., Awaitable[int]] = calculate_output_metrics


def _noop_progress(message: str) -> None:
    pass


async def calculate_metrics(
    processed_files: Sequence[ProcessedFile],
    output: str,
    progress_callback: ProgressCallback | None = None,
    config: CodecrawlConfig | None = None,
    deps: MetricsDeps | None = None,
    **output_metrics_options: Any,
) -> MetricsReport:
    """Build the metrics report for ``output`` and its constituent files.

    Args:
        processed_files: Files the output was rendered from.
        output: The fully rendered output text.
        progress_callback: Receives progress messages.
        config: Configuration (defaults to ``get_config()``); supplies the
            encoding, parallel threshold, chunk count, and output label.
        deps: Collaborators (defaults to the real implementations).
        **output_metrics_options: Extra keyword arguments for the output
            counter (e.g. ``scheduler``, ``registry``).

    Returns:
        MetricsReport: Totals plus per-file character and token counts.

    Raises:
        MetricsUnavailableError: If file or output metrics failed.
    """
    config = config or get_config()
    deps = deps or MetricsDeps()
    progress = progress_callback or _noop_progress
    token_count = config.token_count

    progress("Calculating metrics...")

    with TracingContext(inherit=True):
        try:
            file_metrics, total_tokens = await asyncio.gather(
                deps.calculate_all_file_metrics(
                    processed_files,
                    token_count.encoding,
                    progress,
                ),
                deps.calculate_output_metrics(
                    output,
                    token_count.encoding,
                    config.output_file_path,
                    parallel_threshold=token_count.parallel_threshold,
                    chunk_count=token_count.chunk_count,
                    **output_metrics_options,
                ),
            )
        except Exception as e:
            logger.error(f"Metrics calculation failed: {e}")
            raise MetricsUnavailableError(f"Metrics unavailable: {e}") from e

        file_char_counts: dict[str, int] = {}
        file_token_counts: dict[str, int] = {}
        for file in file_metrics:
            if file.path in file_char_counts:
                logger.warning(f"Duplicate file path in metrics input: {file.path}")
            file_char_counts[file.path] = file.char_count
            file_token_counts[file.path] = file.token_count

        report = MetricsReport(
            total_files=len(processed_files),
            total_characters=len(output),
            total_tokens=total_tokens,
            file_char_counts=file_char_counts,
            file_token_counts=file_token_counts,
        )

    logger.info(
        f"Calculated metrics (files={report.total_files}, "
        f"characters={report.total_characters}, tokens={report.total_tokens})"
    )
    return report


__all__ = ["MetricsDeps", "MetricsUnavailableError", "calculate_metrics"]
