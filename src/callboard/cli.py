"""Headless command-line runner for the call board."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from . import __version__
from .board import BoardRuntime
from .board_config import BoardConfig, load_config_with_notice, save_config
from .logging_utils import setup_logging
from .paths import config_path, log_dir
from .runtime_config import ENGINE_NAMES, resolve_engine_name, resolve_log_level
from .services.playback_state_store import PlaybackState
from .version import build_help_epilog

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="callboard-cli",
        description="Run the call board without a UI.",
        epilog=build_help_epilog(),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose output")
    parser.add_argument(
        "--quiet", action="store_true", help="Only show warnings and errors"
    )
    parser.add_argument("--log-file", help="Write logs to a file path")
    parser.add_argument("--config", help="Path to the board JSON config")
    parser.add_argument(
        "--engine",
        choices=ENGINE_NAMES,
        help="Media engine to use (fake or vlc).",
    )
    parser.add_argument(
        "--duration",
        type=float,
        default=None,
        help="Stop after this many seconds (default: run until interrupted).",
    )
    parser.add_argument(
        "--init-config",
        action="store_true",
        help="Write a default config file if none exists, then exit.",
    )
    return parser


async def run_board(
    config: BoardConfig, *, engine_name: str, duration_s: float | None
) -> None:
    """Run the board until `duration_s` elapses or the task is cancelled."""
    runtime = BoardRuntime(config, engine_name=engine_name)
    last_seen: tuple[int, int] | None = None

    def _log_state(state: PlaybackState) -> None:
        # One line per whole second of progress, plus every state change.
        nonlocal last_seen
        key = (int(state.current_time), int(state.player_state))
        if key == last_seen:
            return
        last_seen = key
        logger.info(
            "Playback %.1fs %s (playing=%s)",
            state.current_time,
            state.player_state.name,
            state.is_playing,
        )

    subscription = runtime.sync.subscribe(_log_state)
    await runtime.start()
    try:
        if duration_s is None:
            await asyncio.Event().wait()
        else:
            await asyncio.sleep(duration_s)
    finally:
        subscription.unsubscribe()
        await runtime.stop()


def main() -> int:
    parser = build_parser()
    args = parser.parse_args()
    try:
        level = resolve_log_level(verbose=args.verbose, quiet=args.quiet)
        setup_logging(
            log_dir=log_dir(),
            level=level,
            log_file=Path(args.log_file) if args.log_file else None,
        )
        path = Path(args.config) if args.config else config_path()
        if args.init_config:
            if path.exists():
                print(f"Config already exists at {path}.")
            else:
                save_config(path, BoardConfig())
                print(f"Wrote default config to {path}.")
            return 0
        config, notice = load_config_with_notice(path)
        if notice:
            print(notice, file=sys.stderr)
        engine_name = resolve_engine_name(args.engine, config.engine)
        logger.info("Starting callboard CLI (engine=%s)", engine_name)
        asyncio.run(
            run_board(config, engine_name=engine_name, duration_s=args.duration)
        )
        return 0
    except KeyboardInterrupt:
        return 0
    except Exception as exc:  # pragma: no cover - top-level safety net
        logger.exception("Unhandled error: %s", exc)
        print("Unexpected error. Re-run with --verbose for details.", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
