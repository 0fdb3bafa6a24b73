"""
Cooperative cancellation for long-running provisioning operations.

A CancellationTokenSource owns the signal; the read-only CancellationToken is
passed down every call chain that can block. ``run_cancellable`` races an
awaitable against the token and cancels the underlying task, which is what
closes an in-flight HTTP stream.
"""

import asyncio
from typing import Awaitable, Optional, TypeVar

T = TypeVar("T")


class CancellationToken:
    """Read-only view of a cancellation signal."""

    def __init__(self, event: Optional[asyncio.Event] = None):
        self._event = event or asyncio.Event()

    @property
    def is_cancellation_requested(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        """Block until cancellation is requested."""
        await self._event.wait()


class CancellationTokenSource:
    """Creates a token and signals it on ``cancel()``."""

    def __init__(self):
        self._event = asyncio.Event()
        self._disposed = False
        self.token = CancellationToken(self._event)

    def cancel(self) -> None:
        if not self._disposed:
            self._event.set()

    def dispose(self) -> None:
        """Detach the source; later ``cancel()`` calls become no-ops."""
        self._disposed = True


async def run_cancellable(
    awaitable: Awaitable[T],
    token: Optional[CancellationToken],
) -> T:
    """
    Await ``awaitable`` unless ``token`` fires first.

    Raises:
        InterruptedError: the token was cancelled before the awaitable finished.
            The awaitable's task is cancelled and awaited before raising.
    """
    if token is None:
        return await awaitable

    task = asyncio.ensure_future(awaitable)
    if token.is_cancellation_requested:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        raise InterruptedError("Operation cancelled")

    waiter = asyncio.ensure_future(token.wait())
    try:
        done, _ = await asyncio.wait(
            {task, waiter}, return_when=asyncio.FIRST_COMPLETED
        )
    except asyncio.CancelledError:
        task.cancel()
        raise
    finally:
        waiter.cancel()

    if task in done:
        return task.result()

    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    raise InterruptedError("Operation cancelled")
