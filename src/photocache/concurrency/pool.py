"""Bounded worker pool that keeps decode and disk work off the event loop."""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Awaitable, Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from typing import Any, TypeVar

from photocache.config.defaults import DEFAULT_DECODE_WORKERS

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class DecodePool:
    """Runs blocking callables in worker threads, at most ``max_workers`` at once.

    The semaphore bounds in-flight work per event loop, so a burst of requests
    queues on the loop instead of piling up inside the executor.
    """

    def __init__(self, max_workers: int = DEFAULT_DECODE_WORKERS) -> None:
        self._max_workers = max_workers
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="photocache-decode"
        )
        self._semaphore: asyncio.Semaphore | None = None

    @property
    def max_workers(self) -> int:
        return self._max_workers

    async def run(self, fn: Callable[..., T], *args: Any) -> T:
        """Run ``fn(*args)`` in a worker thread and await its result."""
        loop = asyncio.get_running_loop()
        async with self._get_semaphore():
            return await loop.run_in_executor(self._executor, functools.partial(fn, *args))

    async def map(
        self,
        fn: Callable[[T], Awaitable[R]],
        items: Iterable[T],
    ) -> list[R | None]:
        """Await ``fn(item)`` for every item concurrently.

        Returns results in input order; an item whose coroutine raised yields
        None instead of failing the batch.
        """
        items = list(items)
        results = await asyncio.gather(*(fn(item) for item in items), return_exceptions=True)

        final: list[R | None] = []
        for i, result in enumerate(results):
            if isinstance(result, BaseException):
                logger.error("Batch item %d failed: %s", i, result)
                final.append(None)
            else:
                final.append(result)
        return final

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)

    def _get_semaphore(self) -> asyncio.Semaphore:
        # Created lazily so the pool can be built outside a running loop
        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self._max_workers)
        return self._semaphore
