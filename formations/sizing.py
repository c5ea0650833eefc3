"""Size <-> soldier-count mapping.

Converts between a unit's formation (ranks x files) and its on-surface
footprint in pixels, in both directions:

  * ``footprint_of`` — formation -> visual width/height, clamped per axis
    to [``MIN_FOOTPRINT``, ``MAX_FOOTPRINT``].
  * ``default_formation_for`` — soldier count -> canonical formation using
    the unit type's default aspect ratio. Used for spawning and whenever a
    soldier count is edited without an explicit formation.
  * ``count_from_footprint`` — resize-gesture inverse: pixel size ->
    formation and soldier count.

Everything here is pure and never fails on geometry; bounds checks on
soldier counts live in ``validate_unit_size`` and are applied by the army
model, not by the mapping itself.
"""

from __future__ import annotations

import math

from .errors import ValidationError
from .models import Check, Formation
from .unit_types import MAX_FOOTPRINT, MIN_FOOTPRINT, PX_PER_UNIT, get_unit_type


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def _round_half_up(value: float) -> int:
    """Round .5 upwards (not to even), matching pixel-snapping in the UI."""
    return math.floor(value + 0.5)


def footprint_of(formation: Formation) -> tuple[int, int]:
    """Visual (width, height) in surface pixels for a formation."""
    width = _clamp(formation.width * PX_PER_UNIT, MIN_FOOTPRINT, MAX_FOOTPRINT)
    height = _clamp(
        formation.depth * PX_PER_UNIT, MIN_FOOTPRINT, MAX_FOOTPRINT
    )
    return width, height


def default_formation_for(soldier_count: int, unit_type: str) -> Formation:
    """Canonical formation for a soldier count.

    With ``r`` the type's default width:depth ratio,
    ``depth = ceil(sqrt(count / r))`` and ``width = ceil(count / depth)``.
    """
    ut = get_unit_type(unit_type)
    depth = math.ceil(
        math.sqrt(soldier_count * ut.default_depth / ut.default_width)
    )
    width = math.ceil(soldier_count / depth)
    return Formation(width=width, depth=depth)


def count_from_footprint(width: float, height: float) -> tuple[Formation, int]:
    """Formation and soldier count for a resized footprint."""
    formation = Formation(
        width=max(1, _round_half_up(width / PX_PER_UNIT)),
        depth=max(1, _round_half_up(height / PX_PER_UNIT)),
    )
    return formation, formation.width * formation.depth


def unit_cost(unit_type: str, soldier_count: int) -> int:
    return get_unit_type(unit_type).cost * soldier_count


def check_unit_size(unit_type: str, soldier_count: int) -> None:
    """Raise ``ValidationError`` if the count is outside the type's range."""
    ut = get_unit_type(unit_type)
    if soldier_count < ut.min_size:
        raise ValidationError(
            f"{ut.name} must have at least {ut.min_size} soldiers"
        )
    if soldier_count > ut.max_size:
        raise ValidationError(
            f"{ut.name} cannot exceed {ut.max_size} soldiers"
        )


def validate_unit_size(unit_type: str, soldier_count: int) -> Check:
    try:
        check_unit_size(unit_type, soldier_count)
    except ValidationError as e:
        return Check(valid=False, error=str(e))
    return Check(valid=True)
