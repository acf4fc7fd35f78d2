"""Metrics engine: character and token counts for packaged outputs.

Modules:
- output_metrics: inline vs. worker-pool counting of the rendered output
- file_metrics: per-file character and token counts
- calculate_metrics: concurrent aggregation into a MetricsReport
- formatting: compact number formatting for display
"""

from packages.metrics.calculate_metrics import (
    MetricsDeps,
    MetricsUnavailableError,
    calculate_metrics,
)
from packages.metrics.file_metrics import calculate_all_file_metrics
from packages.metrics.formatting import format_compact
from packages.metrics.output_metrics import (
    CHUNK_COUNT,
    PARALLEL_THRESHOLD,
    calculate_output_metrics,
    split_into_chunks,
)

__all__ = [
    "CHUNK_COUNT",
    "PARALLEL_THRESHOLD",
    "MetricsDeps",
    "MetricsUnavailableError",
    "calculate_all_file_metrics",
    "calculate_metrics",
    "calculate_output_metrics",
    "format_compact",
    "split_into_chunks",
]
