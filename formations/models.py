"""Data types matching the persisted battle-configuration JSON.

Field names are snake_case in Python; ``from_dict``/``to_dict`` translate
to the camelCase keys of the stored record (``soldierCount``,
``maxPoints``, ...), so files written by older builds load unchanged.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

from .errors import FormationError


@dataclass
class Position:
    x: float = 0
    y: float = 0

    @staticmethod
    def from_dict(d: dict | None) -> Position:
        if not d:
            return Position()
        return Position(x=d.get("x", 0), y=d.get("y", 0))

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y}


@dataclass
class Formation:
    width: int
    depth: int

    @staticmethod
    def from_dict(d: dict) -> Formation:
        return Formation(width=int(d["width"]), depth=int(d["depth"]))

    def to_dict(self) -> dict:
        return {"width": self.width, "depth": self.depth}


@dataclass
class Unit:
    id: str
    type: str
    name: str
    soldier_count: int
    formation: Formation
    position: Position
    cost: int
    general: str | None = None
    soldiers: list[str] = field(default_factory=list)
    hierarchy: int = 999

    @staticmethod
    def from_dict(d: dict) -> Unit:
        general = d.get("general")
        # Older records stored the whole character object.
        if isinstance(general, dict):
            general = general.get("id")
        soldiers = [
            s.get("id") if isinstance(s, dict) else s
            for s in d.get("soldiers", [])
        ]
        hierarchy = d.get("hierarchy")
        return Unit(
            id=d["id"],
            type=d["type"],
            name=d.get("name") or f"{d['type']} Unit",
            soldier_count=int(d["soldierCount"]),
            formation=Formation.from_dict(d["formation"]),
            position=Position.from_dict(d.get("position")),
            cost=int(d["cost"]),
            general=general,
            soldiers=soldiers,
            hierarchy=999 if hierarchy is None else int(hierarchy),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "name": self.name,
            "soldierCount": self.soldier_count,
            "formation": self.formation.to_dict(),
            "position": self.position.to_dict(),
            "cost": self.cost,
            "general": self.general,
            "soldiers": list(self.soldiers),
            "hierarchy": self.hierarchy,
        }

    def character_ids(self) -> list[str]:
        """All character ids referenced by this unit, general first."""
        ids = [self.general] if self.general else []
        ids.extend(self.soldiers)
        return ids


@dataclass
class Army:
    player_id: int
    player_name: str
    max_points: int = 1000
    used_points: int = 0
    units: list[Unit] = field(default_factory=list)

    @staticmethod
    def from_dict(d: dict) -> Army:
        return Army(
            player_id=int(d["playerId"]),
            player_name=d.get("playerName", f"Player {int(d['playerId']) + 1}"),
            max_points=int(d.get("maxPoints", 1000)),
            used_points=int(d.get("usedPoints", 0)),
            units=[Unit.from_dict(u) for u in d.get("units", [])],
        )

    def to_dict(self) -> dict:
        return {
            "playerId": self.player_id,
            "playerName": self.player_name,
            "maxPoints": self.max_points,
            "usedPoints": self.used_points,
            "units": [u.to_dict() for u in self.units],
        }

    def find_unit(self, unit_id: str) -> Unit | None:
        for unit in self.units:
            if unit.id == unit_id:
                return unit
        return None

    def recompute_points(self) -> None:
        self.used_points = sum(u.cost for u in self.units)


@dataclass
class Player:
    name: str
    max_points: int = 1000

    @staticmethod
    def from_dict(d: dict) -> Player:
        return Player(name=d["name"], max_points=int(d.get("maxPoints", 1000)))

    def to_dict(self) -> dict:
        return {"name": self.name, "maxPoints": self.max_points}


@dataclass
class Battle:
    id: str
    name: str = "Unnamed Battle"
    circumstances: str = ""
    players: list[Player] = field(default_factory=list)
    armies: list[Army] = field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""

    @staticmethod
    def from_dict(d: dict) -> Battle:
        armies = [Army.from_dict(a) for a in d["armies"]]
        if len(armies) != 2:
            raise ValueError(f"Expected 2 armies, found {len(armies)}")
        return Battle(
            id=d["id"],
            name=d.get("name") or "Unnamed Battle",
            circumstances=d.get("circumstances", ""),
            players=[Player.from_dict(p) for p in d.get("players", [])],
            armies=armies,
            created_at=d.get("created_at", ""),
            updated_at=d.get("updated_at", ""),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "circumstances": self.circumstances,
            "players": [p.to_dict() for p in self.players],
            "armies": [a.to_dict() for a in self.armies],
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def all_units(self) -> list[Unit]:
        return [u for army in self.armies for u in army.units]


@dataclass
class Check:
    """Outcome of a pure validation: ``valid`` plus an optional message."""

    valid: bool
    error: str | None = None


@dataclass
class Result:
    """Outcome of a command. Commands return these instead of raising."""

    success: bool
    error: str | None = None
    error_kind: str | None = None
    data: Any = None

    @staticmethod
    def ok(data: Any = None) -> Result:
        return Result(success=True, data=data)

    @staticmethod
    def failure(exc: FormationError, data: Any = None) -> Result:
        return Result(
            success=False, error=str(exc), error_kind=exc.kind, data=data
        )


@dataclass
class ArmyStats:
    total_units: int = 0
    total_soldiers: int = 0
    units_by_type: dict[str, int] = field(default_factory=dict)
    generals_assigned: int = 0
    characters_total: int = 0


def clone_units(units: list[Unit]) -> list[Unit]:
    """Deep copy of a unit list; the copies share nothing with the originals."""
    return copy.deepcopy(units)
