"""
Keyed single-flight execution and a short-lived cache built on it.

A key is only ever populated by one in-flight task; concurrent callers for the
same key attach to that task instead of issuing duplicate requests.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Hashable

from provisioner.utils.logging import logger


class SingleFlight:
    """Map from key to the task currently computing its value."""

    def __init__(self):
        self._pending: dict[Hashable, asyncio.Task] = {}

    def in_flight(self, key: Hashable) -> bool:
        task = self._pending.get(key)
        return task is not None and not task.done()

    def start(
        self, key: Hashable, factory: Callable[[], Awaitable[Any]]
    ) -> asyncio.Task:
        """Return the running task for ``key``, starting one if needed."""
        task = self._pending.get(key)
        if task is None or task.done():
            task = asyncio.ensure_future(factory())
            self._pending[key] = task
            task.add_done_callback(lambda t, k=key: self._forget(k, t))
        return task

    async def do(self, key: Hashable, factory: Callable[[], Awaitable[Any]]) -> Any:
        """Await the shared task for ``key``. Cancelling one caller leaves it running."""
        return await asyncio.shield(self.start(key, factory))

    def _forget(self, key: Hashable, task: asyncio.Task) -> None:
        if self._pending.get(key) is task:
            del self._pending[key]
        # Mark the exception as retrieved; awaiting callers still receive it.
        if not task.cancelled() and task.exception() is not None:
            logger.debug(f"Task for {key!r} failed: {task.exception()}")

    def cancel_all(self) -> None:
        for task in self._pending.values():
            task.cancel()
        self._pending.clear()


class ShortLivedCache:
    """
    Keyed cache whose entries expire after ``ttl`` seconds.

    Each expiry triggers exactly one re-query per key, shared by every caller
    that arrives while it is running.
    """

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[Hashable, tuple[float, Any]] = {}
        self._flights = SingleFlight()

    async def get(self, key: Hashable, fetch: Callable[[], Awaitable[Any]]) -> Any:
        entry = self._entries.get(key)
        if entry and self._clock() - entry[0] <= self.ttl:
            return entry[1]
        return await self._flights.do(key, lambda: self._refresh(key, fetch))

    async def _refresh(self, key: Hashable, fetch: Callable[[], Awaitable[Any]]) -> Any:
        value = await fetch()
        self._entries[key] = (self._clock(), value)
        return value

    def clear(self) -> None:
        self._entries.clear()
        self._flights.cancel_all()
