"""Tests for editor configuration loading."""

import json

import pytest

from formations.config import EditorConfig, load_config


def test_defaults_without_file(tmp_path):
    assert load_config(None) == EditorConfig()
    assert load_config(tmp_path / "missing.json") == EditorConfig()


def test_default_values():
    config = EditorConfig()
    assert config.surface == (1200, 800)
    assert config.max_history_size == 50
    assert config.max_units == 40
    assert config.history_enabled and config.characters_enabled


def test_partial_file_overrides(tmp_path):
    path = tmp_path / "editor.json"
    path.write_text(
        json.dumps(
            {"surface_width": 900, "history_enabled": False, "log_level": "debug"}
        )
    )
    config = load_config(path)
    assert config.surface == (900, 800)
    assert config.history_enabled is False
    assert config.log_level == "DEBUG"


def test_round_trip():
    config = EditorConfig(state_path="battle.json", max_units=12)
    assert EditorConfig.from_dict(config.to_dict()) == config


def test_non_object_rejected(tmp_path):
    path = tmp_path / "editor.json"
    path.write_text("[1, 2]")
    with pytest.raises(ValueError):
        load_config(path)
