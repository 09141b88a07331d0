"""Textual TUI for the call board."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path

from textual.app import App, ComposeResult
from textual.timer import Timer
from textual.widgets import Footer, Header, Static

from . import __version__
from .board import BoardRuntime
from .board_config import BoardConfig, load_config_with_notice
from .logging_utils import setup_logging
from .paths import config_path, log_dir
from .runtime_config import ENGINE_NAMES, resolve_engine_name, resolve_log_level
from .ui.status_pane import BoardSnapshot, StatusPane
from .utils.async_utils import cancel_and_wait
from .version import build_help_epilog

logger = logging.getLogger(__name__)
REFRESH_INTERVAL_S = 0.25


class CallboardApp(App):
    TITLE = "callboard"
    CSS = """
    Screen {
        layout: vertical;
    }

    #call-banner {
        height: 1fr;
        content-align: center middle;
        border: solid white;
    }

    #status-pane {
        height: 6;
        border: solid white;
        padding: 0 1;
    }
    """
    BINDINGS = [
        ("c", "call_now", "Call now"),
        ("m", "toggle_chime", "Chime"),
        ("q", "quit", "Quit"),
    ]

    def __init__(
        self,
        *,
        config: BoardConfig | None = None,
        engine_name: str | None = None,
        config_notice: str | None = None,
        auto_start: bool = True,
        demo_calls: bool = True,
    ) -> None:
        super().__init__()
        self.config = config or BoardConfig()
        self.engine_name = resolve_engine_name(engine_name, self.config.engine)
        self.runtime: BoardRuntime | None = None
        self._config_notice = config_notice
        self._auto_start = auto_start
        self._demo_calls = demo_calls
        self._start_task: asyncio.Task[None] | None = None
        self._refresh_timer: Timer | None = None

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static("", id="call-banner")
        yield StatusPane(id="status-pane")
        yield Footer()

    def on_mount(self) -> None:
        pane = self.query_one(StatusPane)
        pane.set_notice(self._config_notice)
        self._refresh_timer = self.set_interval(
            REFRESH_INTERVAL_S, self._refresh_status
        )
        if self._auto_start:
            self._start_task = asyncio.create_task(self.start_board())

    async def start_board(self) -> None:
        runtime = BoardRuntime(
            self.config, engine_name=self.engine_name, demo_calls=self._demo_calls
        )
        self.runtime = runtime
        try:
            await runtime.start()
        except Exception as exc:
            logger.exception("Board failed to start: %s", exc)
            self.query_one(StatusPane).set_notice(
                "Board failed to start. Check the log file and engine setup."
            )
        self._refresh_status()

    async def on_unmount(self) -> None:
        if self._refresh_timer is not None:
            self._refresh_timer.stop()
        start_task, self._start_task = self._start_task, None
        await cancel_and_wait(start_task)
        runtime, self.runtime = self.runtime, None
        if runtime is not None:
            await runtime.stop()

    async def action_call_now(self) -> None:
        runtime = self.runtime
        if runtime is None or runtime.feed.status == "calling":
            return
        if runtime.call_cycle is not None:
            runtime.call_cycle.raise_call()
        else:
            runtime.feed.set_status("calling")

    async def action_toggle_chime(self) -> None:
        runtime = self.runtime
        if runtime is None or runtime.chime is None:
            self.notify("No chime configured.")
            return
        enabled = await runtime.chime.toggle()
        self.notify("Chime on." if enabled else "Chime off.")
        self._refresh_status()

    def _refresh_status(self) -> None:
        runtime = self.runtime
        if runtime is None:
            return
        surface = runtime.controller.surface
        snapshot = BoardSnapshot(
            state=runtime.sync.get_current_state(),
            authority=runtime.sync.arbiter.holder,
            surface=surface.surface_id if surface is not None else None,
            call_status=runtime.feed.status,
            chime_enabled=runtime.chime is not None and runtime.chime.enabled,
            now=time.monotonic(),
        )
        self.query_one(StatusPane).update_snapshot(snapshot)
        banner = self.query_one("#call-banner", Static)
        if snapshot.call_status == "calling":
            banner.update("Now calling - please proceed to your counter")
        else:
            banner.update("")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="callboard",
        description="Call-queue board with a looping media surface.",
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
        "--no-demo-calls",
        action="store_true",
        help="Do not raise calls automatically.",
    )
    return parser


def main() -> int:
    parser = build_parser()
    args = parser.parse_args()
    try:
        level = resolve_log_level(verbose=args.verbose, quiet=args.quiet)
        setup_logging(
            log_dir=log_dir(),
            level=level,
            log_file=Path(args.log_file) if args.log_file else None,
            console=False,
        )
        config, notice = load_config_with_notice(
            Path(args.config) if args.config else config_path()
        )
        logging.getLogger(__name__).info("Starting callboard TUI")
        CallboardApp(
            config=config,
            engine_name=args.engine,
            config_notice=notice,
            demo_calls=not args.no_demo_calls,
        ).run()
        return 0
    except Exception as exc:  # pragma: no cover - top-level safety net
        logging.getLogger(__name__).exception("Fatal startup error: %s", exc)
        print(
            "Startup failed. Verify engine/config/log paths and re-run with --verbose.",
            file=sys.stderr,
        )
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
