"""Shared playback state with observer fan-out and an authority-gated write path.

The store holds one immutable `PlaybackState`. Every accepted write replaces it
wholesale and is delivered to observers synchronously, in publish order.
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any

from .authority import AuthorityArbiter
from .playback_engine import PlayerStateCode, coerce_state_code

logger = logging.getLogger(__name__)

StateObserver = Callable[["PlaybackState"], None]

_WRITABLE_FIELDS = frozenset({"current_time", "player_state", "is_playing"})


@dataclass(frozen=True)
class PlaybackState:
    """Snapshot of the authoritative surface's transport."""

    current_time: float = 0.0
    player_state: PlayerStateCode = PlayerStateCode.UNSTARTED
    is_playing: bool = False
    last_update: float = 0.0


class Subscription:
    """Handle returned by `PlaybackStateStore.subscribe`."""

    def __init__(self, store: PlaybackStateStore, observer: StateObserver) -> None:
        self._store = store
        self._observer = observer
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        self._store._remove(self)  # noqa: SLF001

    def _deliver(self, state: PlaybackState) -> None:
        if not self._active:
            return
        try:
            self._observer(state)
        except Exception:
            logger.exception("Playback state observer failed")


class PlaybackStateStore:
    """Holds the current `PlaybackState` for one board run."""

    def __init__(
        self,
        arbiter: AuthorityArbiter | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._arbiter = arbiter or AuthorityArbiter()
        self._clock = clock
        self._state = PlaybackState(last_update=clock())
        self._subscriptions: list[Subscription] = []

    @property
    def arbiter(self) -> AuthorityArbiter:
        return self._arbiter

    def get_state(self) -> PlaybackState:
        return self._state

    def subscribe(self, observer: StateObserver) -> Subscription:
        """Register `observer`; it is called with the current state right away."""
        subscription = Subscription(self, observer)
        self._subscriptions.append(subscription)
        subscription._deliver(self._state)  # noqa: SLF001
        return subscription

    def update(self, requester_id: str, **changes: Any) -> bool:
        """Apply `changes` if `requester_id` holds authority or nobody does.

        A write from anyone else is dropped without raising; the return value
        only reports whether the write was applied.
        """
        if not self._arbiter.allows(requester_id):
            logger.debug(
                "Dropped playback update from %s; authority held by %s",
                requester_id,
                self._arbiter.holder,
            )
            return False
        self._publish(changes)
        return True

    def force_update(self, **changes: Any) -> PlaybackState:
        """Apply `changes` regardless of authority."""
        return self._publish(changes)

    def _publish(self, changes: dict[str, Any]) -> PlaybackState:
        current = self._state
        state = replace(
            current,
            **_normalize_changes(changes),
            last_update=self._next_stamp(current.last_update),
        )
        self._state = state
        # An observer may publish again; the rest still receive this state.
        for subscription in list(self._subscriptions):
            subscription._deliver(state)  # noqa: SLF001
        return state

    def _next_stamp(self, previous: float) -> float:
        # Coarse clocks can repeat a reading; stamps must still move forward.
        now = self._clock()
        if now > previous:
            return now
        return previous + 1e-6

    def _remove(self, subscription: Subscription) -> None:
        try:
            self._subscriptions.remove(subscription)
        except ValueError:
            return


def _normalize_changes(changes: dict[str, Any]) -> dict[str, Any]:
    """Coerce writable fields; unknown or malformed values are logged and dropped."""
    unknown = set(changes) - _WRITABLE_FIELDS - {"last_update"}
    if unknown:
        logger.warning("Ignoring unknown playback state fields: %s", sorted(unknown))
    normalized: dict[str, Any] = {}
    if "current_time" in changes:
        raw = changes["current_time"]
        try:
            seconds = float(raw)
        except (TypeError, ValueError):
            seconds = math.nan
        if math.isfinite(seconds):
            normalized["current_time"] = max(0.0, seconds)
        else:
            logger.warning("Ignoring invalid playback position %r", raw)
    if "player_state" in changes:
        normalized["player_state"] = coerce_state_code(changes["player_state"])
    if "is_playing" in changes:
        normalized["is_playing"] = bool(changes["is_playing"])
    return normalized
