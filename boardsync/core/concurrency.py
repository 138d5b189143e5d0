"""
Bounded concurrency for webhook processing.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from boardsync.core.exceptions import WorkerPoolClosedError

T = TypeVar("T")


class BoundedWorkerPool:
    """
    Limits how many notifications are processed at once.

    ``run`` waits for a free slot, then awaits the work in the caller's task.
    ``close`` stops admitting new work and ``drain`` waits for in-flight
    work to finish.
    """

    def __init__(self, max_workers: int, logger: Optional[logging.Logger] = None):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.max_workers = max_workers
        self.logger = logger or logging.getLogger(__name__)
        self._semaphore = asyncio.Semaphore(max_workers)
        self._in_flight = 0
        self._idle = asyncio.Event()
        self._idle.set()
        self._closed = False

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def closed(self) -> bool:
        return self._closed

    async def run(self, work: Callable[..., Awaitable[T]], *args, **kwargs) -> T:
        """Run ``work(*args, **kwargs)`` once a slot is free."""
        if self._closed:
            raise WorkerPoolClosedError("worker pool is shutting down")

        self._in_flight += 1
        self._idle.clear()
        try:
            async with self._semaphore:
                if self._closed:
                    raise WorkerPoolClosedError("worker pool is shutting down")
                return await work(*args, **kwargs)
        finally:
            self._in_flight -= 1
            if self._in_flight == 0:
                self._idle.set()

    def close(self) -> None:
        self._closed = True

    async def drain(self, timeout: Optional[float] = None) -> bool:
        """
        Close the pool and wait for in-flight work.

        Returns False if work was still running when ``timeout`` expired.
        """
        self.close()
        if self._in_flight:
            self.logger.info("Waiting for %d in-flight webhook(s)", self._in_flight)
        try:
            await asyncio.wait_for(self._idle.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            self.logger.warning(
                "Abandoning %d in-flight webhook(s) after %.1fs",
                self._in_flight,
                timeout,
            )
            return False
        return True
