"""Cooperative cancellation handle shared by a generation run and its requests."""

from __future__ import annotations

from typing import Awaitable, Callable, Optional, TypeVar
import asyncio

T = TypeVar("T")
SleepFn = Callable[[float], Awaitable[None]]


class CancellationToken:
    """Set once; every awaiting call observes it."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def run(self, awaitable: Awaitable[T]) -> Optional[T]:
        """
        Await `awaitable` unless cancellation comes first; then the inner task
        is cancelled (closing any in-flight connection) and None is returned.
        """
        task = asyncio.ensure_future(awaitable)
        if self.cancelled:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            return None

        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()

        if task.done():
            return task.result()
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        return None

    async def sleep(self, seconds: float, sleep: SleepFn = asyncio.sleep) -> bool:
        """Sleep unless cancelled first. Returns True when cancelled."""
        if seconds > 0:
            await self.run(sleep(seconds))
        return self.cancelled
