"""Tests for the call status feed and demo call cycle."""

from __future__ import annotations

import asyncio
import logging

from callboard.services.call_status import CallStatusFeed, DemoCallCycle


def _run(coro):
    return asyncio.run(coro)


def test_subscribe_receives_current_status() -> None:
    feed = CallStatusFeed()
    seen: list[str] = []
    feed.subscribe(seen.append)
    assert seen == ["idle"]


def test_set_status_notifies_only_on_change() -> None:
    feed = CallStatusFeed()
    seen: list[str] = []
    feed.subscribe(seen.append)
    feed.set_status("calling")
    feed.set_status("calling")
    feed.set_status("idle")
    assert seen == ["idle", "calling", "idle"]


def test_unsubscribe_stops_delivery() -> None:
    feed = CallStatusFeed()
    seen: list[str] = []
    unsubscribe = feed.subscribe(seen.append)
    unsubscribe()
    unsubscribe()
    feed.set_status("calling")
    assert seen == ["idle"]


def test_failing_observer_is_logged(caplog) -> None:
    feed = CallStatusFeed()
    seen: list[str] = []

    def _boom(status: str) -> None:
        if status == "calling":
            raise RuntimeError("observer broke")

    feed.subscribe(_boom)
    feed.subscribe(seen.append)
    with caplog.at_level(logging.ERROR, logger="callboard.services.call_status"):
        feed.set_status("calling")
    assert seen == ["idle", "calling"]
    assert any("observer failed" in record.message for record in caplog.records)


def test_raise_call_is_dismissed_after_display_window() -> None:
    async def run() -> None:
        feed = CallStatusFeed()
        cycle = DemoCallCycle(feed, interval_s=10.0, display_s=0.03)
        cycle.raise_call()
        assert feed.status == "calling"
        await asyncio.sleep(0.06)
        assert feed.status == "idle"
        assert cycle.calls_raised == 1
        await cycle.stop()

    _run(run())


def test_cycle_raises_calls_on_interval() -> None:
    async def run() -> None:
        feed = CallStatusFeed()
        seen: list[str] = []
        feed.subscribe(seen.append)
        cycle = DemoCallCycle(feed, interval_s=0.03, display_s=0.01)
        cycle.start()
        await asyncio.sleep(0.1)
        await cycle.stop()
        assert cycle.calls_raised >= 2
        assert seen[:3] == ["idle", "calling", "idle"]

    _run(run())


def test_stop_cancels_pending_dismissal() -> None:
    async def run() -> None:
        feed = CallStatusFeed()
        cycle = DemoCallCycle(feed, interval_s=10.0, display_s=0.03)
        cycle.start()
        cycle.raise_call()
        await cycle.stop()
        await asyncio.sleep(0.05)
        assert feed.status == "calling"

    _run(run())
