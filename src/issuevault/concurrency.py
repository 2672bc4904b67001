"""Bounded parallel execution for per-issue file writes.

Network calls stay sequential; only independent local writes fan out. The
first failure cancels every write that has not started yet and propagates.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import TypeVar

from .logging import get_logger

T = TypeVar("T")
R = TypeVar("R")


class ConcurrencyConfig:
    """Configuration for concurrency settings."""

    def __init__(self, enabled: bool = True, max_workers: int = 4):
        self.enabled = enabled
        self.max_workers = max(1, max_workers)


class BoundedRunner:
    """Runs a function over items with at most ``max_workers`` in flight."""

    def __init__(self, config: ConcurrencyConfig):
        self.config = config
        self.logger = get_logger()

    async def run(self, items: Sequence[T], func: Callable[[T], R]) -> list[R]:
        if not self.config.enabled or self.config.max_workers == 1 or len(items) <= 1:
            return [func(item) for item in items]

        loop = asyncio.get_running_loop()
        start = time.perf_counter()
        with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            futures = [loop.run_in_executor(executor, func, item) for item in items]
            done, pending = await asyncio.wait(futures, return_when=asyncio.FIRST_EXCEPTION)
            failed = next((f for f in futures if f in done and f.exception()), None)
            if failed is not None:
                for fut in pending:
                    fut.cancel()
                # let already running writes settle before the executor shuts down
                await asyncio.gather(*pending, return_exceptions=True)
                self.logger.log_error(
                    "Parallel write aborted",
                    error=str(failed.exception()),
                    cancelled=sum(1 for f in pending if f.cancelled()),
                )
                raise failed.exception()  # type: ignore[misc]
        self.logger.log_performance(
            "parallel_writes",
            (time.perf_counter() - start) * 1000,
            item_count=len(items),
            max_workers=self.config.max_workers,
        )
        return [f.result() for f in futures]


def run_bounded(
    items: Sequence[T], func: Callable[[T], R], config: ConcurrencyConfig
) -> list[R]:
    """Synchronous entry point used by the sync engine."""
    return asyncio.run(BoundedRunner(config).run(items, func))


__all__ = ["BoundedRunner", "ConcurrencyConfig", "run_bounded"]
