"""Battle-level helpers: creation, loading, metadata and readiness checks.

A battle holds exactly two armies (player ids 0 and 1). Both army models
share one ``Battle`` object, which is what makes character exclusion and
unit-id uniqueness span the pair of armies.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable

from .models import Army, Battle, Check, Player
from .persistence import Persistence
from .unit_types import DEFAULT_MAX_POINTS, MAX_POINTS, MAX_UNITS, MIN_POINTS

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_battle(id_generator: Callable[[], str]) -> Battle:
    """Default two-player battle with empty armies."""
    now = _now_iso()
    players = [
        Player(name="Player 1", max_points=DEFAULT_MAX_POINTS),
        Player(name="Player 2", max_points=DEFAULT_MAX_POINTS),
    ]
    return Battle(
        id=id_generator(),
        players=players,
        armies=[
            Army(player_id=i, player_name=p.name, max_points=p.max_points)
            for i, p in enumerate(players)
        ],
        created_at=now,
        updated_at=now,
    )


def touch(battle: Battle) -> None:
    battle.updated_at = _now_iso()


def open_battle(
    persistence: Persistence, id_generator: Callable[[], str]
) -> Battle:
    """Load the stored battle, or start a fresh one if none is usable."""
    battle = persistence.load()
    if battle is None:
        logger.info("No stored battle found; starting a new one")
        return new_battle(id_generator)
    return battle


def get_army(battle: Battle, player_id: int) -> Army:
    if player_id not in (0, 1):
        raise ValueError("Invalid player ID. Must be 0 or 1")
    return battle.armies[player_id]


def _clamp_points(points: int) -> int:
    return max(MIN_POINTS, min(MAX_POINTS, int(points)))


def update_players(battle: Battle, player1: Player, player2: Player) -> None:
    """Replace both players and mirror names/budgets onto their armies."""
    players = [
        Player(name=p.name, max_points=_clamp_points(p.max_points))
        for p in (player1, player2)
    ]
    battle.players = players
    for army, player in zip(battle.armies, players):
        army.player_name = player.name
        army.max_points = player.max_points
    touch(battle)


def update_battle_info(battle: Battle, name: str, circumstances: str) -> None:
    battle.name = name or "Unnamed Battle"
    battle.circumstances = circumstances or ""
    touch(battle)


def validate_army(army: Army) -> tuple[bool, list[str]]:
    """Advisory checks on one army.

    Exceeding the point budget is reported here but never blocks edits.
    """
    errors = []
    if army.used_points > army.max_points:
        errors.append(
            f"Army exceeds point limit ({army.used_points}/{army.max_points})"
        )
    if len(army.units) > MAX_UNITS:
        errors.append(f"Too many units ({len(army.units)}/{MAX_UNITS} max)")
    has_general = any(u.general is not None for u in army.units)
    if army.units and not has_general:
        errors.append("Warning: No general assigned to any unit")
    return not errors, errors


def is_battle_ready(battle: Battle) -> Check:
    """Both armies valid and non-empty."""
    problems = []
    for army in battle.armies:
        valid, errors = validate_army(army)
        if not army.units:
            problems.append(f"{army.player_name} has no units")
        if not valid:
            problems.extend(f"{army.player_name}: {e}" for e in errors)
    if problems:
        return Check(valid=False, error="; ".join(problems))
    return Check(valid=True)
