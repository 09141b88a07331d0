"""Media engine contract and event payloads.

`PlayerSurface` depends on this protocol to stay engine-agnostic. Concrete
implementations (fake/VLC) translate engine-specific behavior into these shared
commands, state codes, and events.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import IntEnum
from typing import Protocol

from .media_source import EngineConfig


class PlayerStateCode(IntEnum):
    """Transport state codes reported by engines."""

    UNSTARTED = -1
    ENDED = 0
    PLAYING = 1
    PAUSED = 2
    BUFFERING = 3
    CUED = 5


def coerce_state_code(value: int) -> PlayerStateCode:
    """Map a raw engine code to `PlayerStateCode`, unknown codes to UNSTARTED."""
    try:
        return PlayerStateCode(int(value))
    except (TypeError, ValueError):
        return PlayerStateCode.UNSTARTED


@dataclass(frozen=True)
class EngineEvent:
    """Marker base type for engine-originated events."""

    pass


@dataclass(frozen=True)
class EngineReady(EngineEvent):
    """Engine finished its load sequence; seeking may still be unreliable."""

    pass


@dataclass(frozen=True)
class EngineStateChanged(EngineEvent):
    """Engine transport state transition."""

    code: PlayerStateCode


@dataclass(frozen=True)
class EngineError(EngineEvent):
    """Engine-reported runtime error."""

    message: str


EngineEventHandler = Callable[[EngineEvent], Awaitable[None]]


class MediaEngine(Protocol):
    """Playback engine capability consumed by `PlayerSurface`."""

    def set_event_handler(self, handler: EngineEventHandler) -> None: ...

    async def start(self) -> None: ...

    async def shutdown(self) -> None: ...

    async def load(self, config: EngineConfig) -> None: ...

    async def play(self) -> None: ...

    async def pause(self) -> None: ...

    async def seek_to(self, seconds: float) -> None: ...

    async def mute(self) -> None: ...

    async def set_volume(self, volume: int) -> None: ...

    async def get_current_time(self) -> float: ...

    async def get_player_state(self) -> PlayerStateCode: ...


class PlaybackRejected(RuntimeError):
    """Raised by an engine when playback is refused (policy or device)."""


EngineFactory = Callable[[], MediaEngine]
