"""Token counting subsystem.

Modules:
- counter: TokenCounter bound to one tiktoken encoding
- registry: per-encoding EncoderRegistry (lazy creation, release on shutdown)
- pool: WorkerPoolScheduler for parallel counting tasks
"""

from packages.tokenization.counter import TokenCounter, TokenCounterReleasedError
from packages.tokenization.pool import (
    WorkerPoolScheduler,
    get_worker_pool_scheduler,
    shutdown_worker_pools,
)
from packages.tokenization.registry import (
    EncoderRegistry,
    get_encoder_registry,
    reset_encoder_registry,
)

__all__ = [
    "EncoderRegistry",
    "TokenCounter",
    "TokenCounterReleasedError",
    "WorkerPoolScheduler",
    "get_encoder_registry",
    "get_worker_pool_scheduler",
    "reset_encoder_registry",
    "shutdown_worker_pools",
]
