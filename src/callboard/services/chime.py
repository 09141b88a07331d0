"""Call notification tone.

The chime stays off until an operator enables it, since output devices and
kiosk policies can refuse sound before an explicit interaction. A refused
play gets exactly one retry on a freshly built engine; every attempt ends in
a logged `ChimeOutcome` instead of an exception.
"""

from __future__ import annotations

import logging
from typing import Literal

from .media_source import EngineConfig
from .playback_engine import EngineFactory, MediaEngine

logger = logging.getLogger(__name__)

ChimeOutcome = Literal["played", "fallback", "failed", "disabled"]
DEFAULT_VOLUME = 70


class CallChime:
    """Plays the call tone through its own engine handle."""

    def __init__(
        self,
        *,
        engine_factory: EngineFactory,
        tone_path: str,
        volume: int = DEFAULT_VOLUME,
    ) -> None:
        self._engine_factory = engine_factory
        self._tone_config = EngineConfig(
            primary_item_id=tone_path, autoplay=False, start_muted=False
        )
        self._volume = volume
        self._engine: MediaEngine | None = None
        self._fallback_engine: MediaEngine | None = None
        self._enabled = False

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def prepare(self) -> bool:
        """Build and preload the primary engine. Returns False when unavailable."""
        if self._engine is not None:
            return True
        try:
            self._engine = await self._build_engine(self._volume)
        except Exception as exc:
            logger.warning("Chime engine unavailable: %s", exc)
            return False
        return True

    async def enable(self) -> bool:
        """Prime the output with a silent play, then mark the chime enabled."""
        if self._enabled:
            return True
        engine = self._engine
        if engine is None:
            logger.info("Chime cannot be enabled without an engine")
            return False
        try:
            await engine.set_volume(0)
            await engine.play()
            await engine.pause()
            await engine.seek_to(0)
            await engine.set_volume(self._volume)
        except Exception as exc:
            logger.warning("Chime could not be enabled: %s", exc)
            return False
        self._enabled = True
        logger.info("Chime enabled")
        return True

    def disable(self) -> None:
        self._enabled = False
        logger.info("Chime disabled")

    async def toggle(self) -> bool:
        if self._enabled:
            self.disable()
            return False
        return await self.enable()

    async def ring(self) -> ChimeOutcome:
        if not self._enabled:
            return "disabled"
        outcome: ChimeOutcome
        if self._engine is None:
            outcome = await self._ring_fallback()
        else:
            try:
                await self._engine.seek_to(0)
                await self._engine.play()
                outcome = "played"
            except Exception as exc:
                logger.info("Chime play refused (%s); retrying on a new engine", exc)
                outcome = await self._ring_fallback()
        logger.debug("Chime outcome: %s", outcome)
        return outcome

    async def close(self) -> None:
        engine, self._engine = self._engine, None
        await self._retire_fallback()
        if engine is not None:
            await _shutdown_quietly(engine)

    async def _ring_fallback(self) -> ChimeOutcome:
        await self._retire_fallback()
        try:
            engine = await self._build_engine(DEFAULT_VOLUME)
        except Exception as exc:
            logger.warning("Chime fallback failed: %s", exc)
            return "failed"
        self._fallback_engine = engine
        try:
            await engine.play()
        except Exception as exc:
            logger.warning("Chime fallback failed: %s", exc)
            await self._retire_fallback()
            return "failed"
        return "fallback"

    async def _retire_fallback(self) -> None:
        engine, self._fallback_engine = self._fallback_engine, None
        if engine is not None:
            await _shutdown_quietly(engine)

    async def _build_engine(self, volume: int) -> MediaEngine:
        engine = self._engine_factory()
        try:
            await engine.start()
            await engine.load(self._tone_config)
            await engine.set_volume(volume)
        except Exception:
            await _shutdown_quietly(engine)
            raise
        return engine


async def _shutdown_quietly(engine: MediaEngine) -> None:
    try:
        await engine.shutdown()
    except Exception as exc:
        logger.debug("Chime engine shutdown failed: %s", exc)
