"""Tests for time formatting helpers."""

from __future__ import annotations

from callboard.utils.time_format import format_age, format_seconds


def test_format_seconds_under_hour() -> None:
    assert format_seconds(0) == "00:00"
    assert format_seconds(59.9) == "00:59"
    assert format_seconds(61) == "01:01"
    assert format_seconds(3599) == "59:59"


def test_format_seconds_at_hour_and_beyond() -> None:
    assert format_seconds(3600) == "1:00:00"
    assert format_seconds(36_000) == "10:00:00"


def test_format_seconds_rejects_bad_values() -> None:
    assert format_seconds(-5) == "00:00"
    assert format_seconds(float("nan")) == "00:00"
    assert format_seconds(float("inf")) == "00:00"


def test_format_age() -> None:
    assert format_age(0.2) == "just now"
    assert format_age(-3) == "just now"
    assert format_age(12.7) == "12s ago"
    assert format_age(125) == "2m ago"
