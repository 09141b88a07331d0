"""Async helpers for delayed work tied to an owner's lifetime.

`ScheduledTasks` replaces fire-and-forget timers: every delayed callback is an
`asyncio.Task` tracked by its owner, and `cancel_all()` guarantees none of them
runs after the owner is torn down.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from contextlib import suppress

logger = logging.getLogger(__name__)


class ScheduledTasks:
    """Set of cancellable delayed callbacks owned by one object."""

    def __init__(self, owner: str = "") -> None:
        self._owner = owner
        self._tasks: set[asyncio.Task[None]] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._tasks)

    def call_later(
        self,
        delay_s: float,
        callback: Callable[[], Awaitable[None]],
        *,
        name: str = "delayed",
    ) -> asyncio.Task[None] | None:
        """Run `callback` after `delay_s` unless cancelled first.

        Returns None when the set is already closed.
        """
        if self._closed:
            logger.debug("Ignoring %s for closed task set %s", name, self._owner)
            return None
        task = asyncio.create_task(
            self._run_later(max(0.0, delay_s), callback, name),
            name=f"{self._owner}:{name}" if self._owner else name,
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def spawn(
        self, coro_fn: Callable[[], Awaitable[None]], *, name: str = "task"
    ) -> asyncio.Task[None] | None:
        """Run `coro_fn` on the next loop iteration."""
        return self.call_later(0.0, coro_fn, name=name)

    def cancel_all(self) -> int:
        """Cancel pending callbacks and refuse new ones. Returns the count."""
        self._closed = True
        pending = [task for task in self._tasks if not task.done()]
        for task in pending:
            task.cancel()
        self._tasks.clear()
        if pending:
            logger.debug(
                "Cancelled %d pending task(s) for %s", len(pending), self._owner
            )
        return len(pending)

    async def drain(self) -> None:
        """Wait for currently pending callbacks to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _run_later(
        self, delay_s: float, callback: Callable[[], Awaitable[None]], name: str
    ) -> None:
        if delay_s > 0:
            await asyncio.sleep(delay_s)
        try:
            await callback()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Scheduled callback %s failed for %s", name, self._owner)


async def cancel_and_wait(task: asyncio.Task[None] | None) -> None:
    """Cancel `task` and wait until it has unwound."""
    if task is None:
        return
    task.cancel()
    with suppress(asyncio.CancelledError):
        await task
