"""Tests for output-level token counting (inline and worker pool paths).

The fake encoder counts ceil(len / 4) tokens, so the exact effect of
chunking on the total is known in advance.
"""

import logging
import math
from unittest.mock import AsyncMock, MagicMock

import pytest

from packages.metrics.output_metrics import (
    OUTPUT_METRICS_TASK_KIND,
    calculate_output_metrics,
    split_into_chunks,
)
from packages.metrics.workers.output_metrics_worker import count_output_tokens, initialize_worker
from packages.tokenization.pool import WorkerPoolScheduler
from packages.tokenization.registry import EncoderRegistry
from tests.utils.mocks import FAILING_MARKER, FixedWidthEncoder, fixed_width_encoder_factory


def wide_encoder_factory(encoding: str) -> FixedWidthEncoder:
    return FixedWidthEncoder(encoding, width=8)


def single_pass(content: str) -> int:
    return math.ceil(len(content) / 4)


@pytest.mark.unit
class TestSplitIntoChunks:
    """Contiguous chunking with ceil-based chunk size."""

    def test_chunks_concatenate_to_original(self) -> None:
        content = "abcdefghij" * 101

        chunks = split_into_chunks(content, 7)

        assert "".join(chunks) == content
        assert len(chunks) <= 7

    def test_chunk_size_is_ceil(self) -> None:
        chunks = split_into_chunks("a" * 10, 3)

        assert [len(chunk) for chunk in chunks] == [4, 4, 2]

    def test_fewer_chunks_when_sizes_round_up(self) -> None:
        # ceil(100003 / 1000) = 101 characters per chunk -> 991 chunks
        chunks = split_into_chunks("a" * 100_003, 1000)

        assert len(chunks) == 991
        assert len(chunks[-1]) == 13

    def test_short_content_yields_one_chunk_per_character(self) -> None:
        assert split_into_chunks("abc", 10) == ["a", "b", "c"]

    def test_empty_content(self) -> None:
        assert split_into_chunks("", 5) == []

    def test_rejects_zero_chunks(self) -> None:
        with pytest.raises(ValueError, match="chunk_count"):
            split_into_chunks("abc", 0)


@pytest.mark.unit
class TestInlineCounting:
    """Outputs at or below the threshold are counted without the pool."""

    @pytest.mark.asyncio
    async def test_small_output_counts_inline(self, fake_registry: EncoderRegistry) -> None:
        scheduler = MagicMock(spec=WorkerPoolScheduler)

        result = await calculate_output_metrics(
            "a" * 1000,
            "o200k_base",
            "output.xml",
            scheduler=scheduler,
            registry=fake_registry,
            parallel_threshold=1000,
        )

        assert result == 250
        scheduler.initialize.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.usefixtures("unusable_default_registry")
    async def test_empty_injected_registry_is_used(self) -> None:
        registry = EncoderRegistry(fixed_width_encoder_factory)
        assert len(registry) == 0

        result = await calculate_output_metrics("a" * 8, "o200k_base", registry=registry)

        assert result == 2
        assert "o200k_base" in registry

    @pytest.mark.asyncio
    async def test_empty_output_counts_zero(self, fake_registry: EncoderRegistry) -> None:
        result = await calculate_output_metrics("", "o200k_base", registry=fake_registry)

        assert result == 0

    @pytest.mark.asyncio
    async def test_inline_failure_counts_zero(
        self, fake_registry: EncoderRegistry, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING):
            result = await calculate_output_metrics(
                FAILING_MARKER, "o200k_base", "output.xml", registry=fake_registry
            )

        assert result == 0
        assert "Failed to count tokens. path: output.xml" in caplog.text


@pytest.mark.unit
class TestParallelCounting:
    """Outputs above the threshold are chunked and counted in the pool."""

    @pytest.mark.asyncio
    async def test_large_output_sums_chunk_counts(
        self, thread_scheduler: WorkerPoolScheduler
    ) -> None:
        content = "a" * 2000

        result = await calculate_output_metrics(
            content,
            "o200k_base",
            "output.xml",
            scheduler=thread_scheduler,
            encoder_factory=fixed_width_encoder_factory,
            parallel_threshold=1000,
            chunk_count=4,
        )

        assert result == single_pass(content) == 500
        assert thread_scheduler.active_pools == [(OUTPUT_METRICS_TASK_KIND, 4)]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("chunk_count", "expected_excess"),
        [(1000, 743), (100, 74), (10, 7)],
    )
    async def test_boundary_overcount_is_bounded(
        self,
        thread_scheduler: WorkerPoolScheduler,
        chunk_count: int,
        expected_excess: int,
    ) -> None:
        content = "a" * 100_003

        result = await calculate_output_metrics(
            content,
            "o200k_base",
            "output.xml",
            scheduler=thread_scheduler,
            encoder_factory=fixed_width_encoder_factory,
            parallel_threshold=1000,
            chunk_count=chunk_count,
        )

        excess = result - single_pass(content)
        assert excess == expected_excess
        assert 0 <= excess <= len(split_into_chunks(content, chunk_count)) - 1

    @pytest.mark.asyncio
    async def test_failing_chunk_counts_zero_with_chunk_label(
        self, thread_scheduler: WorkerPoolScheduler, caplog: pytest.LogCaptureFixture
    ) -> None:
        content = FAILING_MARKER + "a" * (2000 - len(FAILING_MARKER))

        with caplog.at_level(logging.WARNING):
            result = await calculate_output_metrics(
                content,
                "o200k_base",
                "output.xml",
                scheduler=thread_scheduler,
                encoder_factory=fixed_width_encoder_factory,
                parallel_threshold=1000,
                chunk_count=4,
            )

        # Chunk 0 holds the marker; the other three count 500 / 4 each
        assert result == 3 * 125
        assert "path: output.xml-chunk-0" in caplog.text

    @pytest.mark.asyncio
    async def test_different_encoder_factory_rejected_for_existing_pool(
        self, thread_scheduler: WorkerPoolScheduler
    ) -> None:
        options = {"scheduler": thread_scheduler, "parallel_threshold": 10, "chunk_count": 2}
        await calculate_output_metrics(
            "a" * 40, "o200k_base", encoder_factory=fixed_width_encoder_factory, **options
        )

        with pytest.raises(ValueError, match="was initialized with"):
            await calculate_output_metrics(
                "a" * 40, "o200k_base", encoder_factory=wide_encoder_factory, **options
            )

    @pytest.mark.asyncio
    async def test_pool_initialized_with_worker_entry_point(self) -> None:
        run_task = AsyncMock(return_value=10)
        scheduler = MagicMock(spec=WorkerPoolScheduler)
        scheduler.initialize.return_value = run_task

        result = await calculate_output_metrics(
            "a" * 30,
            "cl100k_base",
            "out.md",
            scheduler=scheduler,
            encoder_factory=fixed_width_encoder_factory,
            parallel_threshold=10,
            chunk_count=3,
        )

        assert result == 30
        scheduler.initialize.assert_called_once_with(
            OUTPUT_METRICS_TASK_KIND,
            3,
            count_output_tokens,
            initializer=initialize_worker,
            initargs=(fixed_width_encoder_factory,),
        )
        labels = [call.args[0].label for call in run_task.call_args_list]
        assert labels == ["out.md-chunk-0", "out.md-chunk-1", "out.md-chunk-2"]
        assert {call.args[0].encoding for call in run_task.call_args_list} == {"cl100k_base"}

    @pytest.mark.asyncio
    async def test_worker_error_propagates_without_partial_total(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        run_task = AsyncMock(side_effect=[5, RuntimeError("worker crashed"), 5])
        scheduler = MagicMock(spec=WorkerPoolScheduler)
        scheduler.initialize.return_value = run_task

        with caplog.at_level(logging.ERROR), pytest.raises(RuntimeError, match="worker crashed"):
            await calculate_output_metrics(
                "a" * 30,
                "o200k_base",
                "output.xml",
                scheduler=scheduler,
                parallel_threshold=10,
                chunk_count=3,
            )

        assert "Error during token count for output.xml" in caplog.text
