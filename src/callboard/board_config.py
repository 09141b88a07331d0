"""JSON board configuration: media source, timings, and call cycle.

Loading is tolerant of invalid or missing values so a damaged file degrades
to safe defaults instead of keeping the kiosk from starting.
"""

from __future__ import annotations

import json
import logging
import math
import time
from contextlib import suppress
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any
from uuid import uuid4

from .runtime_config import DEFAULT_ENGINE, normalize_engine_name
from .services.media_source import MediaSource
from .services.player_surface import SurfaceTimings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BoardConfig:
    """Operator-editable settings loaded at startup."""

    single_item_id: str | None = None
    collection_id: str | None = None
    item_ids: tuple[str, ...] = ()
    engine: str = DEFAULT_ENGINE
    poll_period_s: float = 0.25
    resume_seek_delay_s: float = 0.5
    resume_play_delay_s: float = 0.2
    cold_start_delay_s: float = 1.0
    ended_recovery_delay_s: float = 0.1
    drift_tolerance_s: float = 1.0
    call_interval_s: float = 30.0
    call_display_s: float = 15.0
    chime_path: str | None = None
    chime_volume: int = 70

    def media_source(self) -> MediaSource:
        return MediaSource(
            single_item_id=self.single_item_id,
            collection_id=self.collection_id,
            item_ids=self.item_ids,
        )

    def surface_timings(self) -> SurfaceTimings:
        return SurfaceTimings(
            resume_seek_delay_s=self.resume_seek_delay_s,
            resume_play_delay_s=self.resume_play_delay_s,
            cold_start_delay_s=self.cold_start_delay_s,
            ended_recovery_delay_s=self.ended_recovery_delay_s,
            poll_period_s=self.poll_period_s,
            drift_tolerance_s=self.drift_tolerance_s,
        )


def _coerce_config(data: dict[str, Any]) -> BoardConfig:
    """Coerce an untyped JSON object into `BoardConfig`, field by field."""
    defaults = BoardConfig()

    def _str_or_none(value: Any) -> str | None:
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None

    def _seconds(key: str, default: float) -> float:
        value = data.get(key)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return default
        normalized = float(value)
        if math.isfinite(normalized) and normalized >= 0:
            return normalized
        return default

    def _volume(value: Any, default: int) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            return default
        return max(0, min(100, value))

    raw_items = data.get("item_ids")
    item_ids = (
        tuple(
            item.strip()
            for item in raw_items
            if isinstance(item, str) and item.strip()
        )
        if isinstance(raw_items, list)
        else ()
    )
    engine = data.get("engine")
    return BoardConfig(
        single_item_id=_str_or_none(data.get("single_item_id")),
        collection_id=_str_or_none(data.get("collection_id")),
        item_ids=item_ids,
        engine=normalize_engine_name(engine if isinstance(engine, str) else None)
        or defaults.engine,
        poll_period_s=_seconds("poll_period_s", defaults.poll_period_s),
        resume_seek_delay_s=_seconds(
            "resume_seek_delay_s", defaults.resume_seek_delay_s
        ),
        resume_play_delay_s=_seconds(
            "resume_play_delay_s", defaults.resume_play_delay_s
        ),
        cold_start_delay_s=_seconds("cold_start_delay_s", defaults.cold_start_delay_s),
        ended_recovery_delay_s=_seconds(
            "ended_recovery_delay_s", defaults.ended_recovery_delay_s
        ),
        drift_tolerance_s=_seconds("drift_tolerance_s", defaults.drift_tolerance_s),
        call_interval_s=_seconds("call_interval_s", defaults.call_interval_s),
        call_display_s=_seconds("call_display_s", defaults.call_display_s),
        chime_path=_str_or_none(data.get("chime_path")),
        chime_volume=_volume(data.get("chime_volume"), defaults.chime_volume),
    )


def load_config_with_notice(path: Path) -> tuple[BoardConfig, str | None]:
    """Load config and return an optional user-facing notice."""
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.info("Board config missing at %s; using defaults.", path)
        return BoardConfig(), None
    except OSError as exc:
        logger.warning(
            "Failed to read board config %s: %s; using defaults.", path, exc
        )
        return (
            BoardConfig(),
            "Board settings were reset to defaults.\n"
            "Likely cause: config file is unreadable due to permissions or IO issues.\n"
            f"Next step: verify access to '{path}' and restart.",
        )

    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Board config at %s is invalid JSON; using defaults.", path)
        return (
            BoardConfig(),
            "Board settings were reset to defaults.\n"
            "Likely cause: config file is corrupt or partially written.\n"
            f"Next step: repair '{path}' and restart.",
        )

    if not isinstance(data, dict):
        logger.warning("Board config at %s is not a JSON object; using defaults.", path)
        return (
            BoardConfig(),
            "Board settings were reset to defaults.\n"
            "Likely cause: config file format is invalid for this version.\n"
            f"Next step: remove '{path}' and restart.",
        )

    return _coerce_config(data), None


def load_config(path: Path) -> BoardConfig:
    """Load the board configuration from disk, falling back to defaults."""
    config, _notice = load_config_with_notice(path)
    return config


def save_config(path: Path, config: BoardConfig) -> None:
    """Persist config atomically via write-then-replace."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f"{path.name}.{uuid4().hex}.tmp")
    payload = asdict(config)
    payload["item_ids"] = list(config.item_ids)
    text = json.dumps(payload, indent=2, sort_keys=True)
    delay_s = 0.02
    try:
        for attempt in range(4):
            tmp_path.write_text(text, encoding="utf-8")
            try:
                tmp_path.replace(path)
                return
            except OSError:
                if attempt >= 3:
                    raise
                time.sleep(delay_s)
                delay_s = min(0.25, delay_s * 2.0)
    finally:
        with suppress(OSError):
            tmp_path.unlink()
