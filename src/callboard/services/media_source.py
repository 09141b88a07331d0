"""Resolve a media source configuration into an engine load configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

FALLBACK_ITEM_ID = "dQw4w9WgXcQ"

CollectionType = Literal["collection"]


@dataclass(frozen=True)
class MediaSource:
    """What the board loops: one item, a remote collection, or an item list.

    Only one field is expected to be set. When several are, the collection
    wins over the item list, which wins over the single item.
    """

    single_item_id: str | None = None
    collection_id: str | None = None
    item_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class EngineConfig:
    """Effective engine load configuration."""

    primary_item_id: str
    collection_type: CollectionType | None = None
    collection_id: str | None = None
    explicit_playlist: tuple[str, ...] | None = None
    start_index: int = 0
    autoplay: bool = True
    start_muted: bool = True

    @property
    def is_collection(self) -> bool:
        return self.collection_type == "collection"

    def items(self) -> tuple[str, ...]:
        """Ordered items for engines that play a local list."""
        if self.is_collection:
            return (self.collection_id,) if self.collection_id else ()
        return (self.primary_item_id, *(self.explicit_playlist or ()))


def resolve_media_source(source: MediaSource) -> EngineConfig:
    """Build the engine configuration for `source`. Never raises."""
    if source.collection_id:
        return EngineConfig(
            primary_item_id="",
            collection_type="collection",
            collection_id=source.collection_id,
        )
    if len(source.item_ids) > 1:
        # First item is the load target; the rest queue behind it.
        return EngineConfig(
            primary_item_id=source.item_ids[0],
            explicit_playlist=tuple(source.item_ids[1:]),
        )
    return EngineConfig(primary_item_id=_single_item_target(source))


def _single_item_target(source: MediaSource) -> str:
    if source.single_item_id:
        return source.single_item_id
    if source.item_ids and source.item_ids[0]:
        return source.item_ids[0]
    return FALLBACK_ITEM_ID
