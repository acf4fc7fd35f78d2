"""Worker pool scheduler for CPU-bound counting tasks.

Pools are shared process-wide and keyed by ``(task_kind, concurrency)``: two
callers asking for the same kind of task at the same concurrency share one
pool and queue behind each other; a different task kind never reuses a pool
built for another entry point.

Workers are separate processes by default, so a crashing task cannot take
the caller down. Submissions are unbounded; callers bound outstanding work
through the number of tasks they submit.
"""

from __future__ import annotations

import asyncio
import atexit
import logging
import os
import threading
from collections.abc import Callable
from concurrent.futures import Executor, ProcessPoolExecutor
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

TaskT = TypeVar("TaskT")
ResultT = TypeVar("ResultT")

ExecutorFactory = Callable[[int, Callable[..., Any] | None, tuple[Any, ...]], Executor]
PoolKey = tuple[str, int]


def process_pool_factory(
    max_workers: int,
    initializer: Callable[..., Any] | None,
    initargs: tuple[Any, ...],
) -> Executor:
    """Build a ProcessPoolExecutor running ``initializer`` in every worker."""
    return ProcessPoolExecutor(max_workers=max_workers, initializer=initializer, initargs=initargs)


def get_worker_count(concurrency: int) -> int:
    """Clamp requested concurrency to the available CPU cores (minimum 1)."""
    cpu_count = os.cpu_count() or 4
    return max(1, min(cpu_count, concurrency))


class TaskRunner(Generic[TaskT, ResultT]):
    """Submits tasks of one kind to one pool.

    Calling the runner enqueues the task immediately and returns an awaitable
    resolving to the entry point's result, or raising the worker's exception.
    """

    def __init__(
        self,
        executor: Executor,
        entry_point: Callable[[TaskT], ResultT],
        initializer: Callable[..., Any] | None = None,
        initargs: tuple[Any, ...] = (),
    ) -> None:
        self.executor = executor
        self.entry_point = entry_point
        self.initializer = initializer
        self.initargs = initargs

    def __call__(self, task: TaskT) -> asyncio.Future[ResultT]:
        return asyncio.wrap_future(self.executor.submit(self.entry_point, task))


class WorkerPoolScheduler:
    """Owns pooled executors and hands out TaskRunners.

    Example:
        >>> scheduler = WorkerPoolScheduler()
        >>> run = scheduler.initialize("output_metrics", 8, count_output_tokens)
        >>> counts = await asyncio.gather(*(run(task) for task in tasks))
        >>> scheduler.shutdown()
    """

    def __init__(self, executor_factory: ExecutorFactory | None = None) -> None:
        """Initialize the scheduler.

        Args:
            executor_factory: Builds an executor from ``(max_workers, initializer,
                initargs)``. Defaults to a process pool; tests pass thread pools.
        """
        self._executor_factory = executor_factory or process_pool_factory
        self._pools: dict[PoolKey, TaskRunner[Any, Any]] = {}
        self._lock = threading.Lock()

    def initialize(
        self,
        task_kind: str,
        concurrency: int,
        entry_point: Callable[[TaskT], ResultT],
        *,
        initializer: Callable[..., Any] | None = None,
        initargs: tuple[Any, ...] = (),
    ) -> TaskRunner[TaskT, ResultT]:
        """Return the runner for ``(task_kind, concurrency)``, creating the pool once.

        Args:
            task_kind: Name of the task family (e.g. "output_metrics").
            concurrency: Desired parallelism. The number of OS workers is
                clamped to the CPU count; the pool key keeps the requested value.
            entry_point: Picklable callable executed in a worker for each task.
            initializer: Optional callable run once in every worker at startup.
            initargs: Arguments for ``initializer``.

        Raises:
            ValueError: If concurrency is < 1, or the key is already bound to a
                different entry point, initializer, or initargs.
        """
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")

        key: PoolKey = (task_kind, concurrency)
        with self._lock:
            runner = self._pools.get(key)
            if runner is not None:
                if runner.entry_point is not entry_point:
                    raise ValueError(
                        f"Pool {key} is bound to {runner.entry_point!r}, not {entry_point!r}"
                    )
                # Workers are already initialized; a different setup would be ignored
                if runner.initializer != initializer or runner.initargs != initargs:
                    raise ValueError(
                        f"Pool {key} was initialized with {runner.initializer!r}"
                        f"{runner.initargs!r}, not {initializer!r}{initargs!r}"
                    )
                return runner

            max_workers = get_worker_count(concurrency)
            executor = self._executor_factory(max_workers, initializer, initargs)
            runner = TaskRunner(executor, entry_point, initializer, initargs)
            self._pools[key] = runner

        logger.info(
            f"Initialized worker pool (task_kind={task_kind}, concurrency={concurrency}, "
            f"max_workers={max_workers})"
        )
        return runner

    @property
    def active_pools(self) -> list[PoolKey]:
        """Keys of the pools created so far."""
        with self._lock:
            return list(self._pools)

    def shutdown(self, wait: bool = True) -> None:
        """Shut down every pool. Safe to call more than once."""
        with self._lock:
            runners = list(self._pools.items())
            self._pools.clear()

        for key, runner in runners:
            runner.executor.shutdown(wait=wait)
            logger.debug(f"Shut down worker pool {key}")


_default_scheduler: WorkerPoolScheduler | None = None
_default_scheduler_lock = threading.Lock()


def get_worker_pool_scheduler() -> WorkerPoolScheduler:
    """Return the process-wide scheduler (created lazily)."""
    global _default_scheduler
    if _default_scheduler is not None:
        return _default_scheduler

    with _default_scheduler_lock:
        if _default_scheduler is None:
            _default_scheduler = WorkerPoolScheduler()
        return _default_scheduler


def shutdown_worker_pools(wait: bool = True) -> None:
    """Shut down the process-wide scheduler's pools and drop it."""
    global _default_scheduler
    with _default_scheduler_lock:
        scheduler, _default_scheduler = _default_scheduler, None
    if scheduler is not None:
        scheduler.shutdown(wait=wait)


atexit.register(shutdown_worker_pools)


__all__ = [
    "ExecutorFactory",
    "TaskRunner",
    "WorkerPoolScheduler",
    "get_worker_count",
    "get_worker_pool_scheduler",
    "process_pool_factory",
    "shutdown_worker_pools",
]
