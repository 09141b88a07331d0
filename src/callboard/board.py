"""Wire the board's services together from a `BoardConfig`."""

from __future__ import annotations

import logging

from .board_config import BoardConfig
from .services.board_controller import BoardController
from .services.call_status import CallStatusFeed, DemoCallCycle
from .services.chime import CallChime
from .services.fake_engine import FakeMediaEngine
from .services.playback_engine import EngineFactory
from .services.sync_service import PlaybackSyncService
from .services.vlc_engine import VLCMediaEngine

logger = logging.getLogger(__name__)


def build_engine_factory(name: str) -> EngineFactory:
    logger.info("Media engine selected: %s", name)
    if name == "vlc":
        return VLCMediaEngine
    return FakeMediaEngine


class BoardRuntime:
    """Everything one running board needs, started and stopped together."""

    def __init__(
        self,
        config: BoardConfig,
        *,
        engine_name: str,
        demo_calls: bool = True,
    ) -> None:
        self.config = config
        self.engine_name = engine_name
        engine_factory = build_engine_factory(engine_name)
        self.sync = PlaybackSyncService(config.media_source())
        self.feed = CallStatusFeed()
        self.chime = (
            CallChime(
                engine_factory=engine_factory,
                tone_path=config.chime_path,
                volume=config.chime_volume,
            )
            if config.chime_path
            else None
        )
        self.controller = BoardController(
            sync=self.sync,
            engine_factory=engine_factory,
            feed=self.feed,
            chime=self.chime,
            timings=config.surface_timings(),
        )
        self.call_cycle = (
            DemoCallCycle(
                self.feed,
                interval_s=config.call_interval_s,
                display_s=config.call_display_s,
            )
            if demo_calls
            else None
        )

    async def start(self) -> None:
        if self.chime is not None:
            await self.chime.prepare()
        self.controller.start()
        if self.call_cycle is not None:
            self.call_cycle.start()

    async def stop(self) -> None:
        if self.call_cycle is not None:
            await self.call_cycle.stop()
        await self.controller.stop()
