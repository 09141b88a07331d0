"""Simple VLC engine smoke test runner."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from callboard.services.media_source import MediaSource, resolve_media_source
from callboard.services.vlc_engine import VLCMediaEngine


async def _run(path: Path, seconds: float) -> None:
    engine = VLCMediaEngine()

    async def _handler(event) -> None:
        print(event)

    engine.set_event_handler(_handler)
    await engine.start()
    await engine.load(resolve_media_source(MediaSource(single_item_id=str(path))))
    await asyncio.sleep(seconds)
    print(f"position={await engine.get_current_time():.2f}s")
    print(f"state={(await engine.get_player_state()).name}")
    await engine.shutdown()


def main() -> None:
    parser = argparse.ArgumentParser(description="VLC engine smoke test.")
    parser.add_argument("path", type=Path, help="Path to a media file.")
    parser.add_argument(
        "--seconds", type=float, default=5.0, help="How long to let it play."
    )
    args = parser.parse_args()
    asyncio.run(_run(args.path, args.seconds))


if __name__ == "__main__":
    main()
