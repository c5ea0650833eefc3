"""Tests for battle snapshot export and import."""

import json

import pytest
from PIL import Image
from PIL.PngImagePlugin import PngInfo

from editor.battle_io import (
    METADATA_KEY,
    SNAPSHOT_FORMAT,
    SUMMARY_KEY,
    load_battle,
    load_battle_json,
    load_battle_png,
    save_battle_png,
    summarize,
)
from formations.army import ArmyModel
from formations.battle import new_battle
from formations.ids import IdGenerator


@pytest.fixture
def battle():
    battle = new_battle(IdGenerator(seed=1))
    model = ArmyModel(battle, 1, id_generator=IdGenerator(seed=2))
    model.create_unit("hoplite")
    model.create_unit("light")
    return battle


def _png_with_text(path, text: str):
    info = PngInfo()
    info.add_text(METADATA_KEY, text)
    Image.new("RGB", (4, 4)).save(path, pnginfo=info)


class TestExport:
    def test_snapshot_keeps_battle_and_shown_army(self, tmp_path, battle):
        path = str(tmp_path / "battle.png")
        save_battle_png(Image.new("RGB", (120, 80), "green"), battle, path, 1)

        snapshot = load_battle_png(path)
        assert snapshot.battle == battle
        assert snapshot.player_id == 1
        with Image.open(path) as reopened:
            assert reopened.size == (120, 80)

    def test_summary_chunk(self, tmp_path, battle):
        path = str(tmp_path / "battle.png")
        save_battle_png(Image.new("RGB", (4, 4)), battle, path)
        with Image.open(path) as reopened:
            summary = reopened.text[SUMMARY_KEY]
        assert summary == summarize(battle)
        assert summary.splitlines() == [
            "Unnamed Battle",
            "Player 1: 0 units, 0/1000 points",
            "Player 2: 2 units, 320/1000 points",
        ]


class TestImport:
    def test_png_without_record(self, tmp_path):
        path = str(tmp_path / "plain.png")
        Image.new("RGB", (10, 10), "red").save(path)
        with pytest.raises(ValueError, match="has no embedded battle"):
            load_battle_png(path)

    def test_damaged_record(self, tmp_path):
        path = str(tmp_path / "damaged.png")
        _png_with_text(path, "{not json")
        with pytest.raises(ValueError, match="damaged battle record"):
            load_battle_png(path)

    def test_newer_format_refused(self, tmp_path, battle):
        path = str(tmp_path / "future.png")
        envelope = {
            "format": SNAPSHOT_FORMAT + 1,
            "player": 0,
            "battle": battle.to_dict(),
        }
        _png_with_text(path, json.dumps(envelope))
        with pytest.raises(ValueError, match="unsupported snapshot format"):
            load_battle_png(path)

    def test_unknown_army_refused(self, tmp_path, battle):
        path = str(tmp_path / "odd.png")
        envelope = {"format": 1, "player": 3, "battle": battle.to_dict()}
        _png_with_text(path, json.dumps(envelope))
        with pytest.raises(ValueError, match="unknown army 3"):
            load_battle_png(path)

    def test_record_with_one_army_refused(self, tmp_path, battle):
        record = battle.to_dict()
        record["armies"] = record["armies"][:1]
        path = tmp_path / "short.json"
        path.write_text(json.dumps(record))
        with pytest.raises(ValueError, match="not a valid battle record"):
            load_battle_json(str(path))

    def test_plain_saved_battle(self, tmp_path, battle):
        path = tmp_path / "battle.json"
        path.write_text(json.dumps(battle.to_dict()))
        snapshot = load_battle_json(str(path))
        assert snapshot.battle == battle
        assert snapshot.player_id == 0

    def test_dispatch_by_extension(self, tmp_path, battle):
        png_path = str(tmp_path / "snap.PNG")
        save_battle_png(Image.new("RGB", (4, 4)), battle, png_path, 1)
        json_path = tmp_path / "snap.json"
        json_path.write_text(json.dumps(battle.to_dict()))

        assert load_battle(png_path).player_id == 1
        assert load_battle(str(json_path)).battle == battle

    def test_unsupported_extension(self, tmp_path):
        with pytest.raises(ValueError, match="Cannot import '.txt' files"):
            load_battle(str(tmp_path / "battle.txt"))
