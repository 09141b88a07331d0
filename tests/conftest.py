"""Test configuration."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from callboard.services.player_surface import SurfaceTimings  # noqa: E402

FAST_TIMINGS = SurfaceTimings(
    resume_seek_delay_s=0.03,
    resume_play_delay_s=0.01,
    cold_start_delay_s=0.06,
    ended_recovery_delay_s=0.01,
    poll_period_s=0.02,
    drift_tolerance_s=1.0,
)


@pytest.fixture
def fast_timings() -> SurfaceTimings:
    """Settle delays short enough for scenario tests."""
    return FAST_TIMINGS


@pytest.fixture(autouse=True)
def ensure_current_event_loop():
    """Provide a current event loop for sync tests."""
    loop = asyncio.new_event_loop()
    try:
        asyncio.set_event_loop(loop)
        yield
    finally:
        loop.close()
        asyncio.set_event_loop(None)
