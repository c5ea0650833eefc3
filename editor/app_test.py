"""Tests for the editor's command-line configuration."""

import json

import pytest

pytest.importorskip("tkinter")

from editor.app import _parse_args, build_config  # noqa: E402


def test_flags_override_file(tmp_path):
    config_path = tmp_path / "editor.json"
    config_path.write_text(
        json.dumps({"surface_width": 900, "state_path": "from_file.json"})
    )
    args = _parse_args(
        [
            "--config",
            str(config_path),
            "--state",
            "battle.json",
            "--height",
            "700",
            "--log-level",
            "debug",
        ]
    )
    config = build_config(args)
    assert config.state_path == "battle.json"
    assert config.surface == (900, 700)
    assert config.log_level == "DEBUG"


def test_no_flags_gives_defaults():
    config = build_config(_parse_args([]))
    assert config.surface == (1200, 800)
    assert config.state_path is None
    assert config.roster_path is None
