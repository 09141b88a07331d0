"""Boundary with the call-queue subsystem: idle vs. active call.

The board only needs to know whether a call is on screen. `CallStatusFeed`
carries that flag; `DemoCallCycle` stands in for a real queue by raising a
call on a fixed interval and clearing it after the display window.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Literal

from callboard.utils.async_utils import ScheduledTasks, cancel_and_wait

logger = logging.getLogger(__name__)

CallStatus = Literal["idle", "calling"]
CallObserver = Callable[[CallStatus], None]

DEFAULT_CALL_INTERVAL_S = 30.0
DEFAULT_CALL_DISPLAY_S = 15.0


class CallStatusFeed:
    """Latest call status with synchronous, ordered observer delivery."""

    def __init__(self, initial: CallStatus = "idle") -> None:
        self._status: CallStatus = initial
        self._observers: list[CallObserver] = []

    @property
    def status(self) -> CallStatus:
        return self._status

    def subscribe(self, observer: CallObserver) -> Callable[[], None]:
        """Register `observer` and call it with the current status.

        Returns a callable that removes the observer.
        """
        self._observers.append(observer)
        observer(self._status)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def set_status(self, status: CallStatus) -> None:
        if status == self._status:
            return
        logger.info("Call status %s -> %s", self._status, status)
        self._status = status
        for observer in list(self._observers):
            try:
                observer(status)
            except Exception:
                logger.exception("Call status observer failed")


class DemoCallCycle:
    """Raises a call every `interval_s` while idle; each lasts `display_s`."""

    def __init__(
        self,
        feed: CallStatusFeed,
        *,
        interval_s: float = DEFAULT_CALL_INTERVAL_S,
        display_s: float = DEFAULT_CALL_DISPLAY_S,
    ) -> None:
        self._feed = feed
        self._interval_s = interval_s
        self._display_s = display_s
        self._task: asyncio.Task[None] | None = None
        self._pending = ScheduledTasks("demo-call-cycle")
        self.calls_raised = 0

    def start(self) -> None:
        if self._task is not None:
            return
        self._task = asyncio.create_task(self._run(), name="demo-call-cycle")

    async def stop(self) -> None:
        self._pending.cancel_all()
        task, self._task = self._task, None
        await cancel_and_wait(task)

    def raise_call(self) -> None:
        """Show a call now and schedule its dismissal."""
        self.calls_raised += 1
        self._feed.set_status("calling")
        self._pending.call_later(self._display_s, self._dismiss, name="dismiss-call")

    async def _dismiss(self) -> None:
        self._feed.set_status("idle")

    async def _run(self) -> None:
        try:
            while True:
                await asyncio.sleep(self._interval_s)
                if self._feed.status == "idle":
                    self.raise_call()
        except asyncio.CancelledError:
            return
