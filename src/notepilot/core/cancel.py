"""Cooperative cancellation for a single task."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

T = TypeVar("T")


class CancelToken:
    """A one-shot cancellation signal checked at every suspend point."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    def cancel(self, reason: str | None = None) -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()

    async def race(self, aw: Awaitable[T]) -> tuple[bool, T | None]:
        """Await *aw* unless cancellation arrives first.

        Returns ``(True, None)`` if cancelled (the awaitable is cancelled
        too), otherwise ``(False, result)``.
        """
        if self.cancelled:
            if asyncio.iscoroutine(aw):
                aw.close()
            return True, None
        work = asyncio.ensure_future(aw)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait(
                {work, waiter}, return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            work.cancel()
            raise
        finally:
            waiter.cancel()
        if work in done:
            return False, work.result()
        work.cancel()
        try:
            await work
        except asyncio.CancelledError:
            # Only the work was cancelled; an outer cancel must propagate.
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                raise
        except StopAsyncIteration:
            pass
        return True, None
