"""
core/throttle.py - Bounded Worker Pool for Remote Calls

Runs one coroutine per item with a fixed ceiling on outstanding remote calls.
A fixed number of worker tasks drain a shared queue, so no more than
`max_concurrent` items are ever in flight.

Features:
- Concurrency ceiling per throttle
- Per-item failure isolation (a failed item never stops the pool)
- Metrics collection
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Generic, Iterable, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


@dataclass
class ThrottleConfig:
    """Configuration for a throttle."""
    max_concurrent: int = 8           # Max outstanding worker calls


@dataclass
class ThrottleMetrics:
    """Metrics for a throttle."""
    submitted: int = 0
    succeeded: int = 0
    failed: int = 0
    current_concurrent: int = 0
    max_concurrent_reached: int = 0
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None


@dataclass
class ItemFailure(Generic[T]):
    """An item whose worker raised."""
    item: T
    error: BaseException

    def to_dict(self) -> Dict[str, Any]:
        return {
            'item': str(self.item),
            'error_type': type(self.error).__name__,
            'error': str(self.error),
        }


@dataclass
class ThrottleResult(Generic[T]):
    """Outcome of a throttled run."""
    name: str
    metrics: ThrottleMetrics
    failures: List[ItemFailure[T]] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return self.metrics.succeeded

    @property
    def has_failures(self) -> bool:
        return len(self.failures) > 0


class Throttle:
    """
    Bounded worker pool for isolating remote calls.

    Example:
        throttle = Throttle("validation", ThrottleConfig(max_concurrent=8))

        async def validate(name):
            ...

        result = await throttle.run(account_names, validate)
    """

    def __init__(self, name: str, config: Optional[ThrottleConfig] = None):
        self.name = name
        self.config = config or ThrottleConfig()
        if self.config.max_concurrent < 1:
            raise ValueError(f"Throttle '{name}' needs max_concurrent >= 1")
        self.metrics = ThrottleMetrics()

    async def run(
        self,
        items: Iterable[T],
        worker: Callable[[T], Awaitable[Any]],
        on_failure: Optional[Callable[[ItemFailure[T]], None]] = None,
    ) -> ThrottleResult[T]:
        """
        Run `worker` once per item with at most `max_concurrent` in flight.

        Returns after every item has been processed. Exceptions raised by the
        worker are recorded against their item and passed to `on_failure` as
        soon as they happen; cancellation propagates.
        """
        self.metrics = ThrottleMetrics(started_at=datetime.now())
        result: ThrottleResult[T] = ThrottleResult(name=self.name, metrics=self.metrics)

        queue: "asyncio.Queue[T]" = asyncio.Queue()
        for item in items:
            queue.put_nowait(item)
            self.metrics.submitted += 1

        worker_count = min(self.config.max_concurrent, self.metrics.submitted)
        logger.debug(
            f"Throttle '{self.name}': {self.metrics.submitted} items, {worker_count} workers"
        )

        async def _drain() -> None:
            while True:
                try:
                    item = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                self.metrics.current_concurrent += 1
                if self.metrics.current_concurrent > self.metrics.max_concurrent_reached:
                    self.metrics.max_concurrent_reached = self.metrics.current_concurrent
                try:
                    await worker(item)
                    self.metrics.succeeded += 1
                except Exception as e:
                    self.metrics.failed += 1
                    failure = ItemFailure(item=item, error=e)
                    result.failures.append(failure)
                    if on_failure:
                        on_failure(failure)
                finally:
                    self.metrics.current_concurrent -= 1
                    queue.task_done()

        workers = [asyncio.create_task(_drain()) for _ in range(worker_count)]
        try:
            await asyncio.gather(*workers)
        finally:
            for task in workers:
                if not task.done():
                    task.cancel()
            self.metrics.finished_at = datetime.now()

        return result

    def get_metrics(self) -> Dict[str, Any]:
        """Get current metrics as dictionary."""
        return {
            "name": self.name,
            "max_concurrent": self.config.max_concurrent,
            "submitted": self.metrics.submitted,
            "succeeded": self.metrics.succeeded,
            "failed": self.metrics.failed,
            "current_concurrent": self.metrics.current_concurrent,
            "max_concurrent_reached": self.metrics.max_concurrent_reached,
            "failure_rate": (
                self.metrics.failed / self.metrics.submitted
                if self.metrics.submitted > 0 else 0
            ),
        }
