"""Surface visibility driven by call status.

While idle the board shows the main surface; during a call the main surface
is torn down and a follower takes its place in the sidebar. Each swap
destroys the outgoing surface first, so its final position is flushed to the
shared state before the incoming surface bootstraps from it.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from callboard.utils.async_utils import ScheduledTasks

from .call_status import CallStatus, CallStatusFeed
from .chime import CallChime
from .playback_engine import EngineFactory
from .player_surface import PlayerSurface, SurfaceTimings
from .sync_service import PlaybackSyncService

logger = logging.getLogger(__name__)


class BoardController:
    """Owns the visible surface and swaps it on call status changes."""

    def __init__(
        self,
        *,
        sync: PlaybackSyncService,
        engine_factory: EngineFactory,
        feed: CallStatusFeed,
        chime: CallChime | None = None,
        timings: SurfaceTimings | None = None,
    ) -> None:
        self._sync = sync
        self._engine_factory = engine_factory
        self._feed = feed
        self._chime = chime
        self._timings = timings
        self._surface: PlayerSurface | None = None
        self._swap_lock = asyncio.Lock()
        self._tasks = ScheduledTasks("board-controller")
        self._unsubscribe_feed: Callable[[], None] | None = None
        self.surfaces_created = 0

    @property
    def surface(self) -> PlayerSurface | None:
        return self._surface

    @property
    def sync(self) -> PlaybackSyncService:
        return self._sync

    def start(self) -> None:
        if self._unsubscribe_feed is not None:
            return
        self._unsubscribe_feed = self._feed.subscribe(self._on_call_status)

    async def settle(self) -> None:
        """Wait until queued swaps have been applied."""
        await self._tasks.drain()

    async def stop(self) -> None:
        unsubscribe = self._unsubscribe_feed
        self._unsubscribe_feed = None
        if unsubscribe is not None:
            unsubscribe()
        self._tasks.cancel_all()
        async with self._swap_lock:
            surface, self._surface = self._surface, None
            if surface is not None:
                await surface.destroy()
        if self._chime is not None:
            await self._chime.close()

    def _on_call_status(self, status: CallStatus) -> None:
        self._tasks.spawn(lambda: self._apply(status), name=f"show-{status}")

    async def _apply(self, status: CallStatus) -> None:
        async with self._swap_lock:
            await self._swap(is_main=status == "idle")
        if status == "calling" and self._chime is not None:
            await self._chime.ring()

    async def _swap(self, *, is_main: bool) -> None:
        current = self._surface
        if current is not None and current.is_main == is_main:
            return
        if current is not None:
            self._surface = None
            await current.destroy()
        surface = PlayerSurface(
            sync=self._sync,
            engine_factory=self._engine_factory,
            is_main=is_main,
            timings=self._timings,
        )
        self._surface = surface
        self.surfaces_created += 1
        logger.info(
            "Showing %s surface %s",
            "main" if is_main else "follower",
            surface.surface_id,
        )
        await surface.start()
