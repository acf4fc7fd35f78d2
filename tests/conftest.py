"""Shared pytest fixtures for the Codecrawl test suite.

Provides test configuration, fake tokenizers, and a thread-backed worker
pool scheduler so metrics tests run without network access or subprocesses.
"""

import os
from collections.abc import Iterator
from typing import Any

import pytest

from packages.common.config import CodecrawlConfig, get_config
from packages.metrics.workers.output_metrics_worker import release_worker_registry
from packages.schemas.metrics import ProcessedFile
from packages.tokenization import registry as registry_module
from packages.tokenization.pool import WorkerPoolScheduler
from packages.tokenization.registry import EncoderRegistry
from tests.utils.mocks import fixed_width_encoder_factory, thread_pool_factory

# ========== Test Environment Setup ==========


@pytest.fixture(scope="session", autouse=True)
def setup_test_env() -> Iterator[None]:
    """Set up environment variables before any tests run.

    Points the client at a local API so no test ever needs a real API key,
    and clears the cached config so the values are picked up.
    """
    os.environ.setdefault("CODECRAWL_API_URL", "http://localhost:3002")
    os.environ.setdefault("TOKEN_COUNT_ENCODING", "o200k_base")
    os.environ.setdefault("LOG_LEVEL", "INFO")
    get_config.cache_clear()

    yield

    get_config.cache_clear()


# ========== Configuration Fixtures ==========


@pytest.fixture
def test_config() -> CodecrawlConfig:
    """Provide a configuration with small metrics thresholds for testing.

    Returns:
        CodecrawlConfig: Configuration instance for testing.
    """
    return CodecrawlConfig(
        codecrawl_api_url="http://test-api:3002",
        codecrawl_api_key="test-key",
        token_count_encoding="cl100k_base",
        metrics_parallel_threshold=100,
        metrics_chunk_count=4,
        output_file_path="output.xml",
        log_level="DEBUG",
    )


# ========== Tokenization Fixtures ==========


@pytest.fixture
def fake_registry() -> Iterator[EncoderRegistry]:
    """Registry whose counters use the deterministic FixedWidthEncoder."""
    registry = EncoderRegistry(fixed_width_encoder_factory)
    yield registry
    registry.release_all()


@pytest.fixture
def default_fake_registry(
    fake_registry: EncoderRegistry, monkeypatch: pytest.MonkeyPatch
) -> EncoderRegistry:
    """Install the fake registry as the process-wide default."""
    monkeypatch.setattr(registry_module, "_default_registry", fake_registry)
    return fake_registry


class UnusableRegistry(EncoderRegistry):
    """Registry that fails on any lookup."""

    def get(self, encoding: str) -> Any:
        raise AssertionError(f"process-wide registry used for {encoding}")


@pytest.fixture
def unusable_default_registry(monkeypatch: pytest.MonkeyPatch) -> EncoderRegistry:
    """Install a process-wide registry that fails when used."""
    registry = UnusableRegistry()
    monkeypatch.setattr(registry_module, "_default_registry", registry)
    return registry


@pytest.fixture
def thread_scheduler() -> Iterator[WorkerPoolScheduler]:
    """Worker pool scheduler running tasks on threads.

    Releases the worker-local registry afterwards so each test installs its own
    encoder factory.
    """
    scheduler = WorkerPoolScheduler(executor_factory=thread_pool_factory)
    yield scheduler
    scheduler.shutdown()
    release_worker_registry()


# ========== Test Data Factories ==========


@pytest.fixture
def processed_files() -> list[ProcessedFile]:
    """Three small processed files."""
    return [
        ProcessedFile(path="src/main.py", content="def main():\n    return 42\n"),
        ProcessedFile(path="src/util.py", content="import os\n"),
        ProcessedFile(path="README.md", content="# Demo\n\nA small demo repository.\n"),
    ]


# ========== Pytest Configuration ==========


def pytest_configure(config: Any) -> None:
    """Configure pytest markers.

    Args:
        config: pytest config object.
    """
    config.addinivalue_line(
        "markers",
        "unit: Fast unit tests with fake tokenizers and mocked HTTP",
    )
    config.addinivalue_line(
        "markers",
        "integration: Tests needing network access (tiktoken downloads)",
    )
    config.addinivalue_line(
        "markers",
        "slow: Long-running tests (process pools, >5 seconds)",
    )
