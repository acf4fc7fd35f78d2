"""Per-file character and token counting."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence

from packages.schemas.metrics import FileMetrics, ProcessedFile
from packages.tokenization.counter import TokenCounter
from packages.tokenization.registry import EncoderRegistry, get_encoder_registry

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]


def _measure_file(file: ProcessedFile, counter: TokenCounter) -> FileMetrics:
    return FileMetrics(
        path=file.path,
        char_count=len(file.content),
        token_count=counter.count_tokens(file.content, file.path),
    )


async def calculate_all_file_metrics(
    processed_files: Sequence[ProcessedFile],
    encoding: str,
    progress_callback: ProgressCallback | None = None,
    *,
    registry: EncoderRegistry | None = None,
) -> list[FileMetrics]:
    """Measure every processed file, in input order.

    Counting runs in a worker thread so the event loop stays free for the
    concurrent output-level count. Progress is reported after each file.

    Args:
        processed_files: Files to measure.
        encoding: tiktoken encoding name.
        progress_callback: Receives "Calculating metrics... (i/n) path" messages.
        registry: Registry supplying the counter (defaults to the process-wide one).

    Returns:
        list[FileMetrics]: One entry per input file.
    """
    counter = (registry if registry is not None else get_encoder_registry()).get(encoding)
    total = len(processed_files)
    results: list[FileMetrics] = []

    for index, file in enumerate(processed_files, start=1):
        results.append(await asyncio.to_thread(_measure_file, file, counter))
        if progress_callback is not None:
            progress_callback(f"Calculating metrics... ({index}/{total}) {file.path}")

    logger.debug(f"Calculated metrics for {total} files")
    return results


__all__ = ["ProgressCallback", "calculate_all_file_metrics"]
