"""Fake media engine for deterministic testing and engine-less runs."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from contextlib import suppress
from dataclasses import dataclass, field

from .media_source import EngineConfig
from .playback_engine import (
    EngineEvent,
    EngineEventHandler,
    EngineReady,
    EngineStateChanged,
    PlaybackRejected,
    PlayerStateCode,
)


@dataclass
class _EngineState:
    code: PlayerStateCode = PlayerStateCode.UNSTARTED
    position_s: float = 0.0
    duration_s: float = 0.0
    items: tuple[str, ...] = ()
    index: int = 0
    muted: bool = False
    volume: int = 100
    calls: list[tuple[str, tuple[object, ...]]] = field(default_factory=list)


class FakeMediaEngine:
    """In-memory engine that simulates loading, progress, and end of media.

    Readiness is reported `ready_delay_s` after `load`, mirroring engines whose
    ready signal arrives asynchronously. `failing` names methods that raise,
    and `reject_play` makes `play` refuse with `PlaybackRejected`.
    """

    def __init__(
        self,
        *,
        tick_interval_s: float = 0.05,
        default_duration_s: float = 180.0,
        ready_delay_s: float = 0.0,
        reject_play: bool = False,
        failing: Iterable[str] = (),
    ) -> None:
        self._tick_interval_s = tick_interval_s
        self._default_duration_s = default_duration_s
        self._ready_delay_s = ready_delay_s
        self.reject_play = reject_play
        self.failing = set(failing)
        self._state = _EngineState()
        self._handler: EngineEventHandler | None = None
        self._lock = asyncio.Lock()
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self._ready_task: asyncio.Task[None] | None = None
        self.started = False
        self.shut_down = False

    @property
    def calls(self) -> list[tuple[str, tuple[object, ...]]]:
        return self._state.calls

    @property
    def muted(self) -> bool:
        return self._state.muted

    @property
    def volume(self) -> int:
        return self._state.volume

    @property
    def items(self) -> tuple[str, ...]:
        return self._state.items

    def calls_named(self, name: str) -> list[tuple[object, ...]]:
        return [args for call_name, args in self._state.calls if call_name == name]

    def set_event_handler(self, handler: EngineEventHandler) -> None:
        self._handler = handler

    async def start(self) -> None:
        self._record("start")
        if self._task is not None:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._ticker_loop())
        self.started = True

    async def shutdown(self) -> None:
        self._record("shutdown")
        self.shut_down = True
        for task in (self._ready_task, self._task):
            if task is None:
                continue
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
        self._ready_task = None
        self._task = None
        self._stop_event.set()

    async def load(self, config: EngineConfig) -> None:
        self._record("load", config)
        async with self._lock:
            self._state.items = config.items()
            last_index = max(0, len(self._state.items) - 1)
            self._state.index = min(config.start_index, last_index)
            self._state.position_s = 0.0
            self._state.duration_s = self._default_duration_s
            self._state.muted = config.start_muted
            self._state.code = PlayerStateCode.CUED
        self._ready_task = asyncio.create_task(self._announce_ready(config.autoplay))

    async def play(self) -> None:
        self._record("play")
        if self.reject_play:
            raise PlaybackRejected("play() refused by engine policy")
        await self._set_code(PlayerStateCode.PLAYING)

    async def pause(self) -> None:
        self._record("pause")
        await self._set_code(PlayerStateCode.PAUSED)

    async def seek_to(self, seconds: float) -> None:
        self._record("seek_to", seconds)
        async with self._lock:
            self._state.position_s = _clamp(seconds, 0.0, self._state.duration_s)
            ended = self._state.code == PlayerStateCode.ENDED
        if ended:
            await self._set_code(PlayerStateCode.PAUSED)

    async def mute(self) -> None:
        self._record("mute")
        async with self._lock:
            self._state.muted = True

    async def set_volume(self, volume: int) -> None:
        self._record("set_volume", volume)
        async with self._lock:
            self._state.volume = int(_clamp(volume, 0, 100))

    async def get_current_time(self) -> float:
        self._check("get_current_time")
        async with self._lock:
            return self._state.position_s

    async def get_player_state(self) -> PlayerStateCode:
        self._check("get_player_state")
        async with self._lock:
            return self._state.code

    async def force_state(self, code: PlayerStateCode) -> None:
        """Drive the engine into `code` as if it happened on its own."""
        await self._set_code(code)

    async def jump_to(self, seconds: float) -> None:
        """Move the position without recording a seek call."""
        async with self._lock:
            self._state.position_s = _clamp(seconds, 0.0, self._state.duration_s)

    async def _announce_ready(self, autoplay: bool) -> None:
        if self._ready_delay_s > 0:
            await asyncio.sleep(self._ready_delay_s)
        await self._emit(EngineReady())
        if autoplay and not self.reject_play:
            await self._set_code(PlayerStateCode.PLAYING)

    async def _ticker_loop(self) -> None:
        try:
            while not self._stop_event.is_set():
                await asyncio.sleep(self._tick_interval_s)
                await self._tick()
        except asyncio.CancelledError:
            pass

    async def _tick(self) -> None:
        ended = False
        async with self._lock:
            if self._state.code != PlayerStateCode.PLAYING:
                return
            duration = self._state.duration_s
            if duration <= 0:
                return
            next_pos = self._state.position_s + self._tick_interval_s
            if next_pos >= duration:
                if self._state.index + 1 < len(self._state.items):
                    self._state.index += 1
                    next_pos = 0.0
                else:
                    next_pos = duration
                    self._state.code = PlayerStateCode.ENDED
                    ended = True
            self._state.position_s = next_pos
        if ended:
            await self._emit(EngineStateChanged(PlayerStateCode.ENDED))

    async def _set_code(self, code: PlayerStateCode) -> None:
        async with self._lock:
            if self._state.code == code:
                return
            self._state.code = code
        await self._emit(EngineStateChanged(code))

    def _record(self, name: str, *args: object) -> None:
        self._state.calls.append((name, args))
        self._check(name)

    def _check(self, name: str) -> None:
        if name in self.failing:
            raise RuntimeError(f"fake engine {name} failure")

    async def _emit(self, event: EngineEvent) -> None:
        if self._handler is None:
            return
        await self._handler(event)


def _clamp(value: float, min_value: float, max_value: float) -> float:
    return max(min_value, min(value, max_value))
