"""One visible media element: bootstrap, loop continuity, and mirroring.

A `PlayerSurface` wraps one engine handle. The main surface owns write
authority over the shared playback state and runs the telemetry loop;
followers mirror what the main surface publishes. Engine readiness fires
before seeking is dependable, so resume and cold start go through fixed
settle delays. Every delayed step is tracked and cancelled on `destroy()`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial
from typing import Literal
from uuid import uuid4

from callboard.utils.async_utils import ScheduledTasks

from .authority import AuthorityToken
from .playback_engine import (
    EngineError,
    EngineEvent,
    EngineFactory,
    EngineReady,
    EngineStateChanged,
    MediaEngine,
    PlayerStateCode,
    coerce_state_code,
)
from .playback_state_store import PlaybackState
from .sync_scheduler import SyncScheduler
from .sync_service import PlaybackSyncService

logger = logging.getLogger(__name__)

SurfaceLifecycle = Literal[
    "constructed", "configured", "ready", "ended-recovery", "destroyed"
]
_ACTIVE = {"ready", "ended-recovery"}
_RESUMABLE = {
    PlayerStateCode.PAUSED,
    PlayerStateCode.CUED,
    PlayerStateCode.UNSTARTED,
}


@dataclass(frozen=True)
class SurfaceTimings:
    """Settle delays and polling cadence, in seconds."""

    resume_seek_delay_s: float = 0.5
    resume_play_delay_s: float = 0.2
    cold_start_delay_s: float = 1.0
    ended_recovery_delay_s: float = 0.1
    poll_period_s: float = 0.25
    drift_tolerance_s: float = 1.0


def new_surface_id(is_main: bool) -> str:
    role = "main" if is_main else "follower"
    return f"{role}_{uuid4().hex[:8]}"


class PlayerSurface:
    """Drives one engine handle against the shared playback state."""

    def __init__(
        self,
        *,
        sync: PlaybackSyncService,
        engine_factory: EngineFactory,
        is_main: bool,
        surface_id: str | None = None,
        timings: SurfaceTimings | None = None,
    ) -> None:
        self.surface_id = surface_id or new_surface_id(is_main)
        self.is_main = is_main
        self._sync = sync
        self._engine_factory = engine_factory
        self._timings = timings or SurfaceTimings()
        self._lifecycle: SurfaceLifecycle = "constructed"
        self._engine: MediaEngine | None = None
        self._tasks = ScheduledTasks(self.surface_id)
        self._scheduler: SyncScheduler | None = None
        self._token: AuthorityToken | None = None
        self._bootstrapped = False
        self._muted = False
        self._correction_pending = False
        self._mirrored: PlaybackState | None = None

        self.config = sync.engine_config()
        snapshot = sync.get_current_state()
        self._current_time = snapshot.current_time
        self._player_state = snapshot.player_state
        self._subscription = sync.subscribe(self._on_store_state)
        if is_main:
            self._token = sync.set_active_player(self.surface_id)
        self._lifecycle = "configured"
        logger.debug(
            "Surface %s configured (main=%s, item=%s, collection=%s)",
            self.surface_id,
            is_main,
            self.config.primary_item_id,
            self.config.collection_id,
        )

    @property
    def lifecycle(self) -> SurfaceLifecycle:
        return self._lifecycle

    @property
    def engine(self) -> MediaEngine | None:
        return self._engine

    @property
    def muted(self) -> bool:
        return self._muted

    @property
    def bootstrapped(self) -> bool:
        return self._bootstrapped

    @property
    def token(self) -> AuthorityToken | None:
        return self._token

    @property
    def scheduler(self) -> SyncScheduler | None:
        return self._scheduler

    @property
    def current_time(self) -> float:
        return self._current_time

    @property
    def player_state(self) -> PlayerStateCode:
        return self._player_state

    async def start(self) -> None:
        """Create the engine handle and load the configured media."""
        if self._lifecycle != "configured" or self._engine is not None:
            return
        try:
            engine = self._engine_factory()
            engine.set_event_handler(self._handle_engine_event)
            await engine.start()
        except Exception as exc:
            logger.warning(
                "Engine unavailable for surface %s; continuing without playback: %s",
                self.surface_id,
                exc,
            )
            return
        if self._lifecycle == "destroyed":
            await _shutdown_engine(engine, self.surface_id)
            return
        self._engine = engine
        await self._engine_call("load", self.config)

    async def destroy(self) -> None:
        """Stop all activity and flush the last telemetry. Safe to repeat."""
        if self._lifecycle == "destroyed":
            return
        was_active = self._lifecycle in _ACTIVE
        self._lifecycle = "destroyed"
        self._tasks.cancel_all()
        scheduler, self._scheduler = self._scheduler, None
        if scheduler is not None:
            scheduler.cancel()
        self._subscription.unsubscribe()
        engine, self._engine = self._engine, None
        if scheduler is not None:
            await scheduler.stop()
        if engine is None:
            logger.info("Surface %s destroyed (no engine)", self.surface_id)
            return
        if was_active:
            current_time, code = await self._read_telemetry(engine)
            self._sync.force_update_state(
                {
                    "current_time": current_time,
                    "player_state": code,
                    "is_playing": code == PlayerStateCode.PLAYING,
                }
            )
            logger.info(
                "Surface %s destroyed; flushed position %.2fs (%s)",
                self.surface_id,
                current_time,
                code.name,
            )
        await _shutdown_engine(engine, self.surface_id)

    async def sync_to(self, time_s: float, desired_state: int) -> None:
        """Seek to `time_s`, then play (main only) or pause to match."""
        if self._engine is None or self._lifecycle not in _ACTIVE:
            return
        await self._engine_call("seek_to", time_s)
        self._current_time = time_s
        code = coerce_state_code(desired_state)
        if code == PlayerStateCode.PLAYING and self.is_main:
            await self._engine_call("play")
        elif code == PlayerStateCode.PAUSED:
            await self._engine_call("pause")

    async def _handle_engine_event(self, event: EngineEvent) -> None:
        if self._lifecycle == "destroyed":
            return
        if isinstance(event, EngineReady):
            self._on_ready()
        elif isinstance(event, EngineStateChanged):
            await self._on_state_change(event.code)
        elif isinstance(event, EngineError):
            logger.warning(
                "Engine error on surface %s: %s", self.surface_id, event.message
            )

    def _on_ready(self) -> None:
        if self._lifecycle not in {"configured", "ready"}:
            return
        self._lifecycle = "ready"
        self._bootstrapped = False
        resume_state = self._sync.get_current_state()
        if self.is_main:
            self._start_telemetry()
        timings = self._timings
        if resume_state.current_time > 0:
            logger.info(
                "Surface %s ready; resuming at %.2fs",
                self.surface_id,
                resume_state.current_time,
            )
            self._tasks.call_later(
                timings.resume_seek_delay_s,
                partial(self._resume_seek, resume_state.current_time),
                name="resume-seek",
            )
        else:
            logger.info("Surface %s ready; starting from the top", self.surface_id)
            self._tasks.call_later(
                timings.cold_start_delay_s, self._cold_start, name="cold-start"
            )

    def _start_telemetry(self) -> None:
        arbiter = self._sync.arbiter
        token = None
        if self._token is not None and not arbiter.is_superseded(self._token):
            token = self._sync.set_active_player(
                self.surface_id, expected_epoch=arbiter.epoch
            )
        if token is None:
            logger.info(
                "Main surface %s was superseded by %s before ready; staying passive",
                self.surface_id,
                arbiter.holder,
            )
            return
        self._token = token
        if self._engine is None:
            return
        if self._scheduler is not None:
            self._scheduler.renew(token)
            return
        self._scheduler = SyncScheduler(
            engine=self._engine,
            store=self._sync.store,
            producer_id=self.surface_id,
            token=token,
            period_s=self._timings.poll_period_s,
        )
        self._scheduler.start()

    async def _resume_seek(self, position_s: float) -> None:
        await self._engine_call("seek_to", position_s)
        self._current_time = position_s
        self._tasks.call_later(
            self._timings.resume_play_delay_s, self._resume_play, name="resume-play"
        )
        if not self.is_main and await self._engine_call("mute"):
            self._muted = True

    async def _resume_play(self) -> None:
        await self._engine_call("play")
        self._sync.update_state({"is_playing": True}, self.surface_id)
        self._bootstrapped = True

    async def _cold_start(self) -> None:
        await self._engine_call("play")
        self._sync.update_state(
            {
                "is_playing": True,
                "player_state": PlayerStateCode.PLAYING,
                "current_time": 0,
            },
            self.surface_id,
        )
        self._bootstrapped = True

    async def _on_state_change(self, code: PlayerStateCode) -> None:
        self._player_state = code
        if self._lifecycle != "ready":
            return
        if code == PlayerStateCode.ENDED:
            self._lifecycle = "ended-recovery"
            logger.debug("Surface %s reached the end; looping", self.surface_id)
            self._tasks.call_later(
                self._timings.ended_recovery_delay_s,
                self._recover_from_end,
                name="ended-recovery",
            )
            return
        if not self.is_main or self._engine is None:
            return
        current_time, _code = await self._read_telemetry(self._engine)
        self._sync.update_state(
            {
                "current_time": current_time,
                "player_state": code,
                "is_playing": code == PlayerStateCode.PLAYING,
            },
            self.surface_id,
        )

    async def _recover_from_end(self) -> None:
        await self._engine_call("seek_to", 0)
        await self._engine_call("play")
        self._current_time = 0.0
        self._sync.update_state(
            {
                "current_time": 0,
                "is_playing": True,
                "player_state": PlayerStateCode.PLAYING,
            },
            self.surface_id,
        )
        if self._lifecycle == "ended-recovery":
            self._lifecycle = "ready"

    def _on_store_state(self, state: PlaybackState) -> None:
        self._mirrored = state
        if self.is_main:
            return
        if (
            not self._bootstrapped
            or self._lifecycle != "ready"
            or self._correction_pending
        ):
            return
        self._correction_pending = True
        self._tasks.spawn(self._correct_drift, name="drift-correction")

    async def _correct_drift(self) -> None:
        try:
            state = self._mirrored
            if state is None or self._engine is None:
                return
            local_time, local_code = await self._read_telemetry(self._engine)
            drift = abs(local_time - state.current_time)
            pause_mismatch = (
                state.player_state == PlayerStateCode.PAUSED
                and local_code != PlayerStateCode.PAUSED
            )
            stalled = (
                state.player_state == PlayerStateCode.PLAYING
                and local_code in _RESUMABLE
            )
            if (
                drift <= self._timings.drift_tolerance_s
                and not pause_mismatch
                and not stalled
            ):
                return
            logger.debug(
                "Follower %s drifted %.2fs from shared state; correcting",
                self.surface_id,
                drift,
            )
            await self.sync_to(state.current_time, state.player_state)
            if stalled:
                # sync_to only seeks on a follower.
                await self._engine_call("play")
        finally:
            self._correction_pending = False

    async def _read_telemetry(
        self, engine: MediaEngine
    ) -> tuple[float, PlayerStateCode]:
        try:
            self._current_time = await engine.get_current_time()
            self._player_state = coerce_state_code(await engine.get_player_state())
        except Exception as exc:
            logger.debug(
                "Telemetry read failed on surface %s; using last known values: %s",
                self.surface_id,
                exc,
            )
        return self._current_time, self._player_state

    async def _engine_call(self, action: str, *args: object) -> bool:
        """Invoke one engine command; failures are logged, never raised."""
        engine = self._engine
        if engine is None:
            return False
        try:
            await getattr(engine, action)(*args)
        except Exception as exc:
            logger.warning(
                "Engine %s failed on surface %s: %s", action, self.surface_id, exc
            )
            return False
        return True


async def _shutdown_engine(engine: MediaEngine, surface_id: str) -> None:
    try:
        await engine.shutdown()
    except Exception as exc:
        logger.warning("Engine shutdown failed for surface %s: %s", surface_id, exc)
