"""Tests for battle persistence and the stored record format."""

import json

from formations.army import ArmyModel
from formations.battle import new_battle, open_battle
from formations.ids import IdGenerator
from formations.models import Battle, Unit
from formations.persistence import InMemoryPersistence, JsonFilePersistence
from formations.roster import Roster


def _battle_with_units():
    battle = new_battle(IdGenerator(seed=1))
    roster = Roster.from_dicts(
        [
            {"id": "leonidas", "name": "Leonidas"},
            {"id": "dienekes", "name": "Dienekes"},
        ]
    )
    model = ArmyModel(
        battle, 1, id_generator=IdGenerator(seed=2), roster=roster
    )
    unit_id = model.create_unit("cavalry").data.id
    model.update_unit(unit_id, general="leonidas", soldiers=["dienekes"])
    return battle


class TestJsonFilePersistence:
    def test_missing_file_loads_none(self, tmp_path):
        assert JsonFilePersistence(tmp_path / "nope.json").load() is None

    def test_save_then_load(self, tmp_path):
        battle = _battle_with_units()
        store = JsonFilePersistence(tmp_path / "state" / "battle.json")
        assert store.save(battle)
        loaded = store.load()
        assert loaded == battle

    def test_record_uses_camel_case_keys(self, tmp_path):
        path = tmp_path / "battle.json"
        JsonFilePersistence(path).save(_battle_with_units())
        with open(path) as f:
            data = json.load(f)
        army = data["armies"][1]
        assert army["playerId"] == 1
        assert army["usedPoints"] == 240
        unit = army["units"][0]
        assert unit["soldierCount"] == 60
        assert unit["formation"] == {"width": 10, "depth": 6}
        assert unit["general"] == "leonidas"

    def test_corrupt_file_loads_none(self, tmp_path):
        path = tmp_path / "battle.json"
        path.write_text("{not json")
        assert JsonFilePersistence(path).load() is None

    def test_wrong_army_count_loads_none(self, tmp_path):
        path = tmp_path / "battle.json"
        record = _battle_with_units().to_dict()
        record["armies"] = record["armies"][:1]
        path.write_text(json.dumps(record))
        assert JsonFilePersistence(path).load() is None

    def test_unwritable_path_returns_false(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("")
        store = JsonFilePersistence(blocker / "battle.json")
        assert store.save(_battle_with_units()) is False

    def test_open_battle_falls_back_to_new(self, tmp_path):
        path = tmp_path / "battle.json"
        path.write_text("[]")
        battle = open_battle(JsonFilePersistence(path), IdGenerator(seed=4))
        assert [a.units for a in battle.armies] == [[], []]


class TestInMemoryPersistence:
    def test_counts_saves(self):
        store = InMemoryPersistence()
        store.save(_battle_with_units())
        store.save(_battle_with_units())
        assert store.save_count == 2

    def test_load_is_a_copy(self):
        battle = _battle_with_units()
        store = InMemoryPersistence()
        store.save(battle)
        loaded = store.load()
        loaded.armies[1].units.clear()
        assert len(store.load().armies[1].units) == 1


class TestRecordCompatibility:
    def test_character_objects_are_read_as_ids(self):
        record = {
            "id": "u1",
            "type": "hoplite",
            "name": "Old",
            "soldierCount": 120,
            "formation": {"width": 10, "depth": 12},
            "position": {"x": 5, "y": 6},
            "cost": 240,
            "general": {"id": "leonidas", "name": "Leonidas"},
            "soldiers": [{"id": "dienekes"}, "xerxes"],
        }
        unit = Unit.from_dict(record)
        assert unit.general == "leonidas"
        assert unit.soldiers == ["dienekes", "xerxes"]
        assert unit.hierarchy == 999

    def test_zero_hierarchy_is_kept(self):
        record = {
            "id": "u1",
            "type": "light",
            "soldierCount": 80,
            "formation": {"width": 16, "depth": 5},
            "position": {"x": 0, "y": 0},
            "cost": 80,
            "hierarchy": 0,
        }
        assert Unit.from_dict(record).hierarchy == 0

    def test_battle_defaults(self):
        battle = Battle.from_dict(
            {
                "id": "b1",
                "armies": [
                    {"playerId": 0, "units": []},
                    {"playerId": 1, "units": []},
                ],
            }
        )
        assert battle.name == "Unnamed Battle"
        assert battle.armies[1].player_name == "Player 2"
        assert battle.armies[0].max_points == 1000
