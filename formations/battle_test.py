"""Tests for battle creation, player settings and readiness checks."""

import pytest

from formations.army import GENERAL, ArmyModel
from formations.battle import (
    get_army,
    is_battle_ready,
    new_battle,
    update_battle_info,
    update_players,
    validate_army,
)
from formations.ids import IdGenerator
from formations.models import Player
from formations.roster import Roster


@pytest.fixture
def battle():
    return new_battle(IdGenerator(seed=1))


def test_new_battle_has_two_empty_armies(battle):
    assert [a.player_id for a in battle.armies] == [0, 1]
    assert [p.name for p in battle.players] == ["Player 1", "Player 2"]
    assert all(a.max_points == 1000 and not a.units for a in battle.armies)
    assert battle.created_at == battle.updated_at


def test_get_army_rejects_other_ids(battle):
    assert get_army(battle, 1) is battle.armies[1]
    with pytest.raises(ValueError):
        get_army(battle, -1)


def test_update_players_clamps_budgets(battle):
    update_players(
        battle, Player("Sparta", max_points=100), Player("Persia", max_points=9000)
    )
    assert battle.armies[0].player_name == "Sparta"
    assert battle.armies[0].max_points == 200
    assert battle.armies[1].max_points == 5000
    assert battle.players[1] == Player("Persia", max_points=5000)


def test_update_battle_info(battle):
    update_battle_info(battle, "", "Dawn, light fog")
    assert battle.name == "Unnamed Battle"
    assert battle.circumstances == "Dawn, light fog"


class TestValidateArmy:
    def test_empty_army_is_valid(self, battle):
        assert validate_army(battle.armies[0]) == (True, [])

    def test_over_budget_and_no_general(self, battle):
        model = ArmyModel(battle, 0, id_generator=IdGenerator(seed=2))
        battle.armies[0].max_points = 200
        model.create_unit("hoplite")
        valid, errors = validate_army(battle.armies[0])
        assert not valid
        assert errors == [
            "Army exceeds point limit (240/200)",
            "Warning: No general assigned to any unit",
        ]

    def test_general_clears_warning(self, battle):
        roster = Roster.from_dicts([{"id": "leonidas", "name": "Leonidas"}])
        model = ArmyModel(
            battle, 0, id_generator=IdGenerator(seed=2), roster=roster
        )
        unit_id = model.create_unit("hoplite").data.id
        model.assign_character(unit_id, "leonidas", GENERAL)
        assert validate_army(battle.armies[0]) == (True, [])


class TestBattleReady:
    def test_empty_armies_not_ready(self, battle):
        check = is_battle_ready(battle)
        assert not check.valid
        assert "Player 1 has no units" in check.error

    def test_ready(self, battle):
        roster = Roster.from_dicts([{"id": "a"}, {"id": "b"}])
        ids = IdGenerator(seed=2)
        for pid, general in ((0, "a"), (1, "b")):
            model = ArmyModel(battle, pid, id_generator=ids, roster=roster)
            unit_id = model.create_unit("light").data.id
            model.assign_character(unit_id, general, GENERAL)
        assert is_battle_ready(battle).valid
