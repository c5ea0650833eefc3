"""Unit type definitions, army limits and visual scale.

Pure data module with no UI dependencies, so it can be imported by the
model, the tests and the Tk editor alike.

The three unit types differ in cost per soldier, allowed size range, and
the default formation used both for spawning and as the canonical aspect
ratio when a soldier count is edited directly (see
``sizing.default_formation_for``).
"""

from __future__ import annotations

from dataclasses import dataclass

from .errors import ValidationError


@dataclass(frozen=True)
class UnitType:
    key: str
    name: str
    cost: int  # per soldier
    min_size: int
    max_size: int
    default_size: int
    default_width: int
    default_depth: int
    icon: str
    description: str


UNIT_TYPES: dict[str, UnitType] = {
    "light": UnitType(
        key="light",
        name="Light Infantry",
        cost=1,
        min_size=20,
        max_size=400,
        default_size=80,
        default_width=16,  # wider formation for skirmishers
        default_depth=5,
        icon="L",
        description="Fast, flexible skirmishers",
    ),
    "hoplite": UnitType(
        key="hoplite",
        name="Hoplite",
        cost=2,
        min_size=40,
        max_size=800,
        default_size=120,
        default_width=10,
        default_depth=12,
        icon="H",
        description="Heavy infantry phalanx",
    ),
    "cavalry": UnitType(
        key="cavalry",
        name="Cavalry",
        cost=4,
        min_size=20,
        max_size=200,
        default_size=60,
        default_width=10,
        default_depth=6,
        icon="C",
        description="Mobile shock troops",
    ),
}

# -- Army limits --

MAX_UNITS = 40
DEFAULT_MAX_POINTS = 1000
MIN_POINTS = 200
MAX_POINTS = 5000

# -- Visual scale (surface pixels) --

PX_PER_UNIT = 10  # one formation rank/file = 10 px
MIN_FOOTPRINT = 40
MAX_FOOTPRINT = 300

# Default spawn grid: column = n mod 5, row = n div 5
SPAWN_GRID_COLUMNS = 5
SPAWN_GRID_ORIGIN = 50
SPAWN_GRID_PITCH = 150


def get_unit_type(key: str) -> UnitType:
    """Look up a unit type, raising ``ValidationError`` for unknown keys."""
    try:
        return UNIT_TYPES[key]
    except KeyError:
        raise ValidationError(f"Unknown unit type: {key}") from None
