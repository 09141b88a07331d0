"""Collaborator-facing facade over the shared playback state.

One `PlaybackSyncService` is built per board run and handed to every surface
and UI component that needs the playback state; nothing reaches it through
module globals.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .authority import AuthorityArbiter, AuthorityToken
from .media_source import EngineConfig, MediaSource, resolve_media_source
from .playback_state_store import (
    PlaybackState,
    PlaybackStateStore,
    StateObserver,
    Subscription,
)


class PlaybackSyncService:
    """Owns the media source, the state store, and its authority arbiter."""

    def __init__(
        self,
        source: MediaSource | None = None,
        *,
        store: PlaybackStateStore | None = None,
    ) -> None:
        self._source = source or MediaSource()
        self._store = store or PlaybackStateStore(AuthorityArbiter())

    @property
    def store(self) -> PlaybackStateStore:
        return self._store

    @property
    def arbiter(self) -> AuthorityArbiter:
        return self._store.arbiter

    def get_video_config(self) -> MediaSource:
        return self._source

    def engine_config(self) -> EngineConfig:
        return resolve_media_source(self._source)

    def get_current_state(self) -> PlaybackState:
        return self._store.get_state()

    def subscribe(self, observer: StateObserver) -> Subscription:
        return self._store.subscribe(observer)

    def update_state(self, partial: Mapping[str, Any], producer_id: str) -> bool:
        return self._store.update(producer_id, **partial)

    def force_update_state(self, partial: Mapping[str, Any]) -> PlaybackState:
        return self._store.force_update(**partial)

    def set_active_player(
        self, producer_id: str, *, expected_epoch: int | None = None
    ) -> AuthorityToken | None:
        return self._store.arbiter.set_authority(
            producer_id, expected_epoch=expected_epoch
        )
