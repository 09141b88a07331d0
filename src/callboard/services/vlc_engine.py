"""VLC media engine using python-vlc.

libVLC calls run on a dedicated thread. Commands are queued from the event
loop and resolved through futures; state transitions are polled on the thread
and delivered back to the loop as engine events.
"""

from __future__ import annotations

import asyncio
import logging
import os
import queue
import threading
from collections.abc import Coroutine
from dataclasses import dataclass
from typing import Any, cast

from .media_source import EngineConfig
from .playback_engine import (
    EngineError,
    EngineEvent,
    EngineEventHandler,
    EngineReady,
    EngineStateChanged,
    PlaybackRejected,
    PlayerStateCode,
)

logger = logging.getLogger(__name__)

SHUTDOWN_TIMEOUT_S = 2.0


@dataclass
class _Command:
    name: str
    args: tuple[Any, ...]
    future: asyncio.Future[Any] | None


class VLCMediaEngine:
    """Media engine backed by a VLC media-list player on its own thread."""

    def __init__(self, *, poll_interval_ms: int = 200) -> None:
        self._poll_interval = poll_interval_ms / 1000
        self._handler: EngineEventHandler | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._queue: queue.Queue[_Command] = queue.Queue()
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    def set_event_handler(self, handler: EngineEventHandler) -> None:
        self._handler = handler

    async def start(self) -> None:
        if self._thread is not None:
            return
        self._loop = asyncio.get_running_loop()
        ready_future: asyncio.Future[None] = self._loop.create_future()
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._thread_main,
            args=(ready_future,),
            name="VLCEngineThread",
            daemon=True,
        )
        self._thread.start()
        await ready_future

    async def shutdown(self) -> None:
        thread = self._thread
        if thread is None:
            return
        self._stop_event.set()
        self._queue.put(_Command("wake", (), None))
        thread.join(timeout=SHUTDOWN_TIMEOUT_S)
        if thread.is_alive():
            raise RuntimeError(
                f"VLC engine thread did not stop within {SHUTDOWN_TIMEOUT_S} seconds"
            )
        self._thread = None

    async def load(self, config: EngineConfig) -> None:
        await self._submit("load", config)

    async def play(self) -> None:
        await self._submit("play")

    async def pause(self) -> None:
        await self._submit("pause")

    async def seek_to(self, seconds: float) -> None:
        await self._submit("seek_to", seconds)

    async def mute(self) -> None:
        await self._submit("mute")

    async def set_volume(self, volume: int) -> None:
        await self._submit("set_volume", volume)

    async def get_current_time(self) -> float:
        return float(await self._submit("get_current_time"))

    async def get_player_state(self) -> PlayerStateCode:
        return PlayerStateCode(await self._submit("get_player_state"))

    async def _submit(self, name: str, *args: Any) -> Any:
        thread = self._thread
        if self._loop is None or thread is None or not thread.is_alive():
            raise RuntimeError("VLC engine not started.")
        future: asyncio.Future[Any] = self._loop.create_future()
        self._queue.put(_Command(name, args, future))
        return await future

    def _thread_main(self, ready_future: asyncio.Future[None]) -> None:
        try:
            import vlc

            instance = vlc.Instance()
            player = instance.media_player_new()
            list_player = instance.media_list_player_new()
            list_player.set_media_player(player)
        except Exception as exc:  # pragma: no cover - depends on VLC install
            self._notify_future_exception(
                ready_future,
                RuntimeError("VLC engine unavailable. Ensure VLC/libVLC is installed."),
            )
            self._emit_event(EngineError(str(exc)))
            return

        self._notify_future_result(ready_future, None)
        last_code = PlayerStateCode.UNSTARTED

        while not self._stop_event.is_set():
            try:
                cmd = self._queue.get(timeout=self._poll_interval)
            except queue.Empty:
                cmd = None

            if cmd is not None and cmd.name != "wake":
                try:
                    result = self._handle_command(cmd, instance, player, list_player)
                    self._notify_future_result(cmd.future, result)
                except Exception as exc:  # pragma: no cover - engine safety net
                    self._notify_future_exception(cmd.future, exc)
                    self._emit_event(EngineError(str(exc)))

            code = _map_state(player)
            if code != last_code:
                last_code = code
                self._emit_event(EngineStateChanged(code))

        list_player.stop()
        player.stop()

    def _handle_command(
        self, cmd: _Command, instance: Any, player: Any, list_player: Any
    ) -> Any:
        name = cmd.name
        if name == "load":
            (config,) = cmd.args
            media_list = instance.media_list_new()
            for item in cast(EngineConfig, config).items():
                media_list.add_media(_new_media(instance, item))
            list_player.set_media_list(media_list)
            player.audio_set_mute(bool(config.start_muted))
            if config.autoplay:
                list_player.play_item_at_index(config.start_index)
            self._emit_event(EngineReady())
            return None
        if name == "play":
            if _map_state(player) == PlayerStateCode.ENDED:
                list_player.play_item_at_index(0)
                return None
            if list_player.play() == -1:
                raise PlaybackRejected("VLC refused to start playback")
            return None
        if name == "pause":
            list_player.set_pause(1)
            return None
        if name == "seek_to":
            (seconds,) = cmd.args
            player.set_time(int(max(0.0, float(seconds)) * 1000))
            return None
        if name == "mute":
            player.audio_set_mute(True)
            return None
        if name == "set_volume":
            (volume,) = cmd.args
            player.audio_set_volume(int(volume))
            return None
        if name == "get_current_time":
            return max(player.get_time(), 0) / 1000
        if name == "get_player_state":
            return int(_map_state(player))
        raise ValueError(f"Unknown command {name}")

    def _emit_event(self, event: EngineEvent) -> None:
        if self._handler is None or self._loop is None:
            return
        coro = self._handler(event)
        asyncio.run_coroutine_threadsafe(
            cast(Coroutine[Any, Any, None], coro), self._loop
        )

    def _notify_future_result(
        self, future: asyncio.Future[Any] | None, value: Any
    ) -> None:
        if future is None or self._loop is None:
            return
        self._loop.call_soon_threadsafe(self._resolve_future_result, future, value)

    def _notify_future_exception(
        self, future: asyncio.Future[Any] | None, exc: Exception
    ) -> None:
        if future is None or self._loop is None:
            return
        self._loop.call_soon_threadsafe(self._resolve_future_exception, future, exc)

    @staticmethod
    def _resolve_future_result(future: asyncio.Future[Any], value: Any) -> None:
        if future.done():
            return
        future.set_result(value)

    @staticmethod
    def _resolve_future_exception(
        future: asyncio.Future[Any], exc: BaseException
    ) -> None:
        if future.done():
            return
        future.set_exception(exc)


def _new_media(instance: Any, item: str) -> Any:
    if os.path.exists(item):
        return instance.media_new_path(item)
    return instance.media_new(item)


def _map_state(player: Any) -> PlayerStateCode:
    try:
        state = player.get_state()
    except Exception:
        return PlayerStateCode.UNSTARTED
    name = getattr(state, "name", str(state)).lower()
    if name.startswith("state."):
        name = name[len("state.") :]
    if name == "playing":
        return PlayerStateCode.PLAYING
    if name == "paused":
        return PlayerStateCode.PAUSED
    if name in {"opening", "buffering"}:
        return PlayerStateCode.BUFFERING
    if name == "ended":
        return PlayerStateCode.ENDED
    if name == "stopped":
        return PlayerStateCode.CUED
    return PlayerStateCode.UNSTARTED
