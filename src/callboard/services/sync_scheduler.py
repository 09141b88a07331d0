"""Fixed-period telemetry loop run by the authoritative surface.

Each tick reads the engine's position and state, nudges the engine back into
playback when it sits in anything other than PLAYING or ENDED, and pushes the
reading through the store's gated write path.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from callboard.utils.async_utils import cancel_and_wait

from .authority import AuthorityToken
from .playback_engine import MediaEngine, PlayerStateCode, coerce_state_code
from .playback_state_store import PlaybackStateStore

logger = logging.getLogger(__name__)

DEFAULT_PERIOD_S = 0.25
_PROGRESSING = {PlayerStateCode.PLAYING, PlayerStateCode.ENDED}


@dataclass(frozen=True)
class Telemetry:
    current_time: float
    code: PlayerStateCode


class SyncScheduler:
    """Polls one engine and publishes its telemetry under one producer id."""

    def __init__(
        self,
        *,
        engine: MediaEngine,
        store: PlaybackStateStore,
        producer_id: str,
        token: AuthorityToken | None = None,
        period_s: float = DEFAULT_PERIOD_S,
    ) -> None:
        self._engine = engine
        self._store = store
        self._producer_id = producer_id
        self._token = token
        self._period_s = max(0.01, float(period_s))
        self._task: asyncio.Task[None] | None = None
        self._last: Telemetry | None = None
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def last_telemetry(self) -> Telemetry | None:
        return self._last

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(
            self._run(), name=f"sync-scheduler:{self._producer_id}"
        )

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is asyncio.current_task():
            return
        await cancel_and_wait(task)

    def renew(self, token: AuthorityToken) -> None:
        """Adopt a fresh grant and restart the loop if it had stopped."""
        self._token = token
        self.start()

    def cancel(self) -> None:
        """Synchronous cancel for teardown paths that cannot await."""
        if self._task is not None:
            self._task.cancel()

    async def _run(self) -> None:
        try:
            while True:
                await asyncio.sleep(self._period_s)
                if self._token is not None and self._store.arbiter.is_superseded(
                    self._token
                ):
                    logger.info(
                        "Surface %s lost authority to %s; stopping telemetry loop",
                        self._producer_id,
                        self._store.arbiter.holder,
                    )
                    return
                await self.tick()
        except asyncio.CancelledError:
            return

    async def tick(self) -> bool:
        """Run one poll. Returns whether the store accepted the reading."""
        try:
            current_time = await self._engine.get_current_time()
            code = coerce_state_code(await self._engine.get_player_state())
        except Exception as exc:
            logger.debug("Telemetry read failed for %s: %s", self._producer_id, exc)
            return False
        self.ticks += 1
        self._last = Telemetry(current_time, code)
        if code not in _PROGRESSING:
            logger.debug(
                "Engine for %s reported %s; resuming playback",
                self._producer_id,
                code.name,
            )
            try:
                await self._engine.play()
            except Exception as exc:
                logger.warning("Resume play failed for %s: %s", self._producer_id, exc)
        return self._store.update(
            self._producer_id,
            current_time=current_time,
            player_state=code,
            is_playing=code == PlayerStateCode.PLAYING,
        )
