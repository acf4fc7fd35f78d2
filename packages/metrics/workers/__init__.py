"""Pool worker entry points for metrics tasks."""

from packages.metrics.workers.output_metrics_worker import (
    OutputMetricsTask,
    count_output_tokens,
    initialize_worker,
)

__all__ = ["OutputMetricsTask", "count_output_tokens", "initialize_worker"]
