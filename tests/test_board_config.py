"""Tests for board config persistence."""

from __future__ import annotations

import json
import logging

from callboard.board_config import (
    BoardConfig,
    load_config,
    load_config_with_notice,
    save_config,
)


def test_missing_config_uses_defaults(tmp_path) -> None:
    config, notice = load_config_with_notice(tmp_path / "missing.json")
    assert config == BoardConfig()
    assert notice is None


def test_save_and_load_round_trip(tmp_path) -> None:
    path = tmp_path / "nested" / "board.json"
    config = BoardConfig(
        item_ids=("a", "b"),
        engine="fake",
        cold_start_delay_s=2.5,
        chime_path="/srv/tone.wav",
        chime_volume=40,
    )
    save_config(path, config)
    assert load_config(path) == config
    assert list(path.parent.glob("*.tmp")) == []
    assert json.loads(path.read_text(encoding="utf-8"))["item_ids"] == ["a", "b"]


def test_invalid_json_returns_notice(tmp_path, caplog) -> None:
    path = tmp_path / "board.json"
    path.write_text("{not json", encoding="utf-8")
    with caplog.at_level(logging.WARNING, logger="callboard.board_config"):
        config, notice = load_config_with_notice(path)
    assert config == BoardConfig()
    assert notice is not None and "corrupt" in notice
    assert any("invalid JSON" in record.message for record in caplog.records)


def test_non_object_returns_notice(tmp_path) -> None:
    path = tmp_path / "board.json"
    path.write_text("[1, 2]", encoding="utf-8")
    config, notice = load_config_with_notice(path)
    assert config == BoardConfig()
    assert notice is not None and "format is invalid" in notice


def test_invalid_values_fall_back_per_field(tmp_path) -> None:
    path = tmp_path / "board.json"
    path.write_text(
        json.dumps(
            {
                "single_item_id": "  ",
                "collection_id": " PL9 ",
                "item_ids": ["x", "", 3, " y "],
                "engine": "quicktime",
                "poll_period_s": -1,
                "resume_seek_delay_s": True,
                "resume_play_delay_s": "soon",
                "drift_tolerance_s": 2,
                "chime_volume": 400,
            }
        ),
        encoding="utf-8",
    )
    config = load_config(path)
    defaults = BoardConfig()
    assert config.single_item_id is None
    assert config.collection_id == "PL9"
    assert config.item_ids == ("x", "y")
    assert config.engine == defaults.engine
    assert config.poll_period_s == defaults.poll_period_s
    assert config.resume_seek_delay_s == defaults.resume_seek_delay_s
    assert config.resume_play_delay_s == defaults.resume_play_delay_s
    assert config.drift_tolerance_s == 2.0
    assert config.chime_volume == 100


def test_config_builds_source_and_timings() -> None:
    config = BoardConfig(
        collection_id="PL1", resume_seek_delay_s=0.7, poll_period_s=0.5
    )
    assert config.media_source().collection_id == "PL1"
    timings = config.surface_timings()
    assert timings.resume_seek_delay_s == 0.7
    assert timings.poll_period_s == 0.5
    assert timings.cold_start_delay_s == 1.0
