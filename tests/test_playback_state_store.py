"""Tests for the shared playback state store."""

from __future__ import annotations

import logging

from callboard.services.authority import AuthorityArbiter
from callboard.services.playback_engine import PlayerStateCode
from callboard.services.playback_state_store import PlaybackState, PlaybackStateStore


class _StepClock:
    def __init__(self, *readings: float) -> None:
        self._readings = list(readings)
        self._last = 0.0

    def __call__(self) -> float:
        if self._readings:
            self._last = self._readings.pop(0)
        return self._last


def test_initial_state_defaults() -> None:
    store = PlaybackStateStore(clock=lambda: 5.0)
    state = store.get_state()
    assert state.current_time == 0.0
    assert state.player_state == PlayerStateCode.UNSTARTED
    assert state.is_playing is False
    assert state.last_update == 5.0


def test_subscribe_delivers_current_state_immediately() -> None:
    store = PlaybackStateStore()
    seen: list[PlaybackState] = []
    store.subscribe(seen.append)
    assert seen == [store.get_state()]


def test_update_without_authority_is_accepted() -> None:
    store = PlaybackStateStore()
    assert store.update("anyone", current_time=12.5) is True
    assert store.get_state().current_time == 12.5


def test_update_from_non_holder_is_dropped() -> None:
    arbiter = AuthorityArbiter()
    arbiter.set_authority("main_a")
    store = PlaybackStateStore(arbiter)
    seen: list[PlaybackState] = []
    store.subscribe(seen.append)

    assert store.update("follower_b", current_time=99.0) is False

    assert store.get_state().current_time == 0.0
    assert len(seen) == 1


def test_holder_update_merges_partial_fields() -> None:
    arbiter = AuthorityArbiter()
    arbiter.set_authority("main_a")
    store = PlaybackStateStore(arbiter)
    store.update("main_a", current_time=3.0, player_state=PlayerStateCode.PLAYING)
    store.update("main_a", is_playing=True)
    state = store.get_state()
    assert state.current_time == 3.0
    assert state.player_state == PlayerStateCode.PLAYING
    assert state.is_playing is True


def test_force_update_bypasses_authority() -> None:
    arbiter = AuthorityArbiter()
    arbiter.set_authority("main_a")
    store = PlaybackStateStore(arbiter)
    state = store.force_update(current_time=42.0, is_playing=False)
    assert state.current_time == 42.0
    assert store.get_state() is state


def test_last_update_is_strictly_increasing() -> None:
    store = PlaybackStateStore(clock=_StepClock(10.0, 10.0, 10.0, 9.0))
    first = store.get_state().last_update
    store.force_update(current_time=1.0)
    second = store.get_state().last_update
    store.force_update(current_time=2.0)
    third = store.get_state().last_update
    store.force_update(current_time=3.0)
    fourth = store.get_state().last_update
    assert first < second < third < fourth


def test_caller_supplied_last_update_is_ignored() -> None:
    store = PlaybackStateStore(clock=_StepClock(1.0, 2.0))
    store.force_update(current_time=1.0, last_update=-50.0)
    assert store.get_state().last_update == 2.0


def test_observers_receive_updates_in_order() -> None:
    store = PlaybackStateStore()
    times: list[float] = []
    store.subscribe(lambda state: times.append(state.current_time))
    store.force_update(current_time=1.0)
    store.force_update(current_time=2.0)
    store.force_update(current_time=3.0)
    assert times == [0.0, 1.0, 2.0, 3.0]


def test_unsubscribe_stops_delivery_and_is_idempotent() -> None:
    store = PlaybackStateStore()
    seen: list[PlaybackState] = []
    subscription = store.subscribe(seen.append)
    subscription.unsubscribe()
    subscription.unsubscribe()
    store.force_update(current_time=1.0)
    assert len(seen) == 1
    assert subscription.active is False


def test_failing_observer_does_not_block_others(caplog) -> None:
    store = PlaybackStateStore()
    seen: list[float] = []

    def _boom(state: PlaybackState) -> None:
        if state.current_time > 0:
            raise RuntimeError("observer broke")

    store.subscribe(_boom)
    store.subscribe(lambda state: seen.append(state.current_time))
    with caplog.at_level(
        logging.ERROR, logger="callboard.services.playback_state_store"
    ):
        store.force_update(current_time=4.0)

    assert seen == [0.0, 4.0]
    assert any("observer failed" in record.message for record in caplog.records)


def test_values_are_normalized() -> None:
    store = PlaybackStateStore()
    store.force_update(current_time=-3, player_state=2, is_playing=1)
    state = store.get_state()
    assert state.current_time == 0.0
    assert state.player_state is PlayerStateCode.PAUSED
    assert state.is_playing is True


def test_unknown_field_is_logged_and_dropped(caplog) -> None:
    store = PlaybackStateStore()
    with caplog.at_level(
        logging.WARNING, logger="callboard.services.playback_state_store"
    ):
        state = store.force_update(volume=10, current_time=4.0)
    assert state.current_time == 4.0
    assert not hasattr(state, "volume")
    assert any("unknown playback state" in r.message for r in caplog.records)


def test_malformed_position_is_dropped_without_raising() -> None:
    arbiter = AuthorityArbiter()
    arbiter.set_authority("main_a")
    store = PlaybackStateStore(arbiter)
    store.force_update(current_time=8.0)
    assert store.update("main_a", current_time="soon", is_playing=True) is True
    state = store.get_state()
    assert state.current_time == 8.0
    assert state.is_playing is True
    store.force_update(current_time=float("nan"), player_state=None)
    assert store.get_state().current_time == 8.0
    assert store.get_state().player_state == PlayerStateCode.UNSTARTED


def test_observer_publishing_during_delivery_does_not_skip_states() -> None:
    store = PlaybackStateStore()
    first_seen: list[float] = []
    second_seen: list[float] = []

    def _echo(state: PlaybackState) -> None:
        first_seen.append(state.current_time)
        if state.current_time == 1.0:
            store.force_update(current_time=2.0)

    store.subscribe(_echo)
    store.subscribe(lambda state: second_seen.append(state.current_time))
    store.force_update(current_time=1.0)

    assert first_seen == [0.0, 1.0, 2.0]
    assert sorted(second_seen) == [0.0, 1.0, 2.0]
    assert store.get_state().current_time == 2.0
