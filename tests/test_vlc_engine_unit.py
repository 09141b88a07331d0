"""Unit tests for VLC engine command handling without VLC."""

from __future__ import annotations

import asyncio
import threading

import pytest

from callboard.services.media_source import MediaSource, resolve_media_source
from callboard.services.playback_engine import (
    EngineReady,
    PlaybackRejected,
    PlayerStateCode,
)
from callboard.services.vlc_engine import VLCMediaEngine, _Command, _map_state


class _DummyMediaList:
    def __init__(self) -> None:
        self.items: list[str] = []

    def add_media(self, media: str) -> None:
        self.items.append(media)


class _DummyInstance:
    def __init__(self) -> None:
        self.media_list = _DummyMediaList()

    def media_list_new(self) -> _DummyMediaList:
        return self.media_list

    def media_new_path(self, path: str) -> str:
        return f"path:{path}"

    def media_new(self, location: str) -> str:
        return f"mrl:{location}"


class _DummyPlayer:
    def __init__(self, state: str = "State.Playing") -> None:
        self.state = state
        self.muted: bool | None = None
        self.volume: int | None = None
        self.time_set: int | None = None
        self.time_ms = 0

    def get_state(self) -> str:
        return self.state

    def audio_set_mute(self, muted: bool) -> None:
        self.muted = muted

    def audio_set_volume(self, volume: int) -> None:
        self.volume = volume

    def set_time(self, time_ms: int) -> None:
        self.time_set = time_ms

    def get_time(self) -> int:
        return self.time_ms


class _DummyListPlayer:
    def __init__(self, play_result: int = 0) -> None:
        self.play_result = play_result
        self.media_list: _DummyMediaList | None = None
        self.played_index: int | None = None
        self.play_calls = 0
        self.paused: int | None = None

    def set_media_list(self, media_list: _DummyMediaList) -> None:
        self.media_list = media_list

    def play_item_at_index(self, index: int) -> None:
        self.played_index = index

    def play(self) -> int:
        self.play_calls += 1
        return self.play_result

    def set_pause(self, value: int) -> None:
        self.paused = value


class _RecordingEngine(VLCMediaEngine):
    def __init__(self) -> None:
        super().__init__()
        self.emitted: list[object] = []

    def _emit_event(self, event: object) -> None:
        self.emitted.append(event)


def _handle(engine, name, *args, player=None, list_player=None, instance=None):
    return engine._handle_command(  # noqa: SLF001
        _Command(name, args, None),
        instance or _DummyInstance(),
        player or _DummyPlayer(),
        list_player or _DummyListPlayer(),
    )


def test_load_builds_media_list_and_reports_ready() -> None:
    engine = _RecordingEngine()
    instance = _DummyInstance()
    player = _DummyPlayer()
    list_player = _DummyListPlayer()
    config = resolve_media_source(MediaSource(item_ids=("a", "b")))

    _handle(
        engine,
        "load",
        config,
        player=player,
        list_player=list_player,
        instance=instance,
    )

    assert instance.media_list.items == ["mrl:a", "mrl:b"]
    assert list_player.media_list is instance.media_list
    assert list_player.played_index == 0
    assert player.muted is True
    assert any(isinstance(event, EngineReady) for event in engine.emitted)


def test_load_uses_local_path_when_file_exists(tmp_path) -> None:
    tone = tmp_path / "tone.wav"
    tone.write_bytes(b"")
    engine = _RecordingEngine()
    instance = _DummyInstance()
    config = resolve_media_source(MediaSource(single_item_id=str(tone)))
    _handle(engine, "load", config, instance=instance)
    assert instance.media_list.items == [f"path:{tone}"]


def test_play_after_end_restarts_first_item() -> None:
    engine = _RecordingEngine()
    list_player = _DummyListPlayer()
    _handle(engine, "play", player=_DummyPlayer("State.Ended"), list_player=list_player)
    assert list_player.played_index == 0
    assert list_player.play_calls == 0


def test_refused_play_raises_playback_rejected() -> None:
    engine = _RecordingEngine()
    with pytest.raises(PlaybackRejected):
        _handle(
            engine,
            "play",
            player=_DummyPlayer("State.Paused"),
            list_player=_DummyListPlayer(play_result=-1),
        )


def test_seek_and_telemetry_commands() -> None:
    engine = _RecordingEngine()
    player = _DummyPlayer()
    _handle(engine, "seek_to", 12.5, player=player)
    assert player.time_set == 12500
    player.time_ms = 4200
    assert _handle(engine, "get_current_time", player=player) == 4.2
    assert _handle(engine, "get_player_state", player=player) == 1


def test_pause_mute_and_volume_commands() -> None:
    engine = _RecordingEngine()
    player = _DummyPlayer()
    list_player = _DummyListPlayer()
    _handle(engine, "pause", player=player, list_player=list_player)
    _handle(engine, "mute", player=player)
    _handle(engine, "set_volume", 35, player=player)
    assert list_player.paused == 1
    assert player.muted is True
    assert player.volume == 35


def test_unknown_command_raises() -> None:
    with pytest.raises(ValueError):
        _handle(_RecordingEngine(), "rewind")


@pytest.mark.parametrize(
    ("state", "expected"),
    [
        ("State.Playing", PlayerStateCode.PLAYING),
        ("State.Paused", PlayerStateCode.PAUSED),
        ("State.Buffering", PlayerStateCode.BUFFERING),
        ("State.Opening", PlayerStateCode.BUFFERING),
        ("State.Ended", PlayerStateCode.ENDED),
        ("State.Stopped", PlayerStateCode.CUED),
        ("State.NothingSpecial", PlayerStateCode.UNSTARTED),
    ],
)
def test_map_state(state: str, expected: PlayerStateCode) -> None:
    assert _map_state(_DummyPlayer(state)) == expected


def test_resolve_future_result_ignores_done_future() -> None:
    async def run() -> None:
        loop = asyncio.get_running_loop()
        future: asyncio.Future[int] = loop.create_future()
        future.set_result(1)
        VLCMediaEngine._resolve_future_result(future, 2)
        assert future.result() == 1

    asyncio.run(run())


def test_resolve_future_exception_ignores_done_future() -> None:
    async def run() -> None:
        loop = asyncio.get_running_loop()
        future: asyncio.Future[int] = loop.create_future()
        future.set_result(1)
        VLCMediaEngine._resolve_future_exception(future, RuntimeError("x"))
        assert future.result() == 1

    asyncio.run(run())


def test_submit_rejects_when_engine_thread_not_running() -> None:
    async def run() -> None:
        engine = VLCMediaEngine()
        engine._loop = asyncio.get_running_loop()  # noqa: SLF001
        engine._thread = threading.Thread()  # noqa: SLF001
        with pytest.raises(RuntimeError, match="VLC engine not started"):
            await engine._submit("get_player_state")  # noqa: SLF001

    asyncio.run(run())


def test_shutdown_raises_when_thread_does_not_stop() -> None:
    class _StuckThread:
        def join(self, timeout: float | None = None) -> None:
            return None

        def is_alive(self) -> bool:
            return True

    async def run() -> None:
        engine = VLCMediaEngine()
        engine._thread = _StuckThread()  # type: ignore[assignment]  # noqa: SLF001
        with pytest.raises(RuntimeError, match="did not stop within 2\\.0 seconds"):
            await engine.shutdown()

    asyncio.run(run())
