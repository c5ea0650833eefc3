"""Overlap detection and slot search for unit footprints.

The central question this module answers: "may this unit sit here?"
Units are axis-aligned rectangles anchored at their top-left corner, sized
by ``sizing.footprint_of``. Two rectangles overlap unless one lies
entirely to the left, right, above or below the other; the separating
tests are strict, so rectangles that share an edge still count as
overlapping.

``validate_placement`` is cheap enough to run on every pointer move: it
builds one (n, 4) array of the other units' rectangles and tests them in a
single vectorised pass.

Also provides the position helpers the army model uses when it has to pick
a position itself:

  * ``default_grid_position`` — the spawn grid (5 columns, fixed pitch).
  * ``find_free_position`` — first non-overlapping spot on the surface,
    preferring a given position.
  * ``find_adjacent_slot`` — where a duplicate goes: right, then left, then
    below, then a diagonal fallback clamped to the surface.
  * ``clamp_to_surface`` — keep a footprint inside the surface bounds.
"""

from __future__ import annotations

from typing import Iterable

import numpy as np

from .models import Check, Formation, Position, Unit
from .sizing import footprint_of
from .unit_types import (
    PX_PER_UNIT,
    SPAWN_GRID_COLUMNS,
    SPAWN_GRID_ORIGIN,
    SPAWN_GRID_PITCH,
)

Rect = tuple[float, float, float, float]  # left, top, width, height

OVERLAP_ERROR = "Units cannot overlap"

# Gap left between a unit and its duplicate.
DUPLICATE_GAP = PX_PER_UNIT
DUPLICATE_DIAGONAL_OFFSET = 30


def unit_rect(
    unit: Unit,
    position: Position | None = None,
    formation: Formation | None = None,
) -> Rect:
    """Footprint rectangle of a unit, optionally at another position/shape."""
    pos = position or unit.position
    w, h = footprint_of(formation or unit.formation)
    return (pos.x, pos.y, w, h)


def rects_overlap(a: Rect, b: Rect) -> bool:
    ax, ay, aw, ah = a
    bx, by, bw, bh = b
    return not (
        ax + aw < bx or bx + bw < ax or ay + ah < by or by + bh < ay
    )


def _rect_array(rects: Iterable[Rect]) -> np.ndarray:
    arr = np.array(list(rects), dtype=np.float64)
    return arr.reshape(-1, 4)


def overlaps_any(rect: Rect, others: np.ndarray) -> bool:
    """True if ``rect`` overlaps any row of an (n, 4) rectangle array."""
    if len(others) == 0:
        return False
    x, y, w, h = rect
    ox, oy, ow, oh = others[:, 0], others[:, 1], others[:, 2], others[:, 3]
    separated = (
        (x + w < ox) | (ox + ow < x) | (y + h < oy) | (oy + oh < y)
    )
    return bool(np.any(~separated))


def validate_placement(
    units: list[Unit],
    unit_id: str,
    candidate: Position,
    formation: Formation | None = None,
) -> Check:
    """Check whether ``unit_id`` may sit at ``candidate`` without overlap.

    ``formation`` overrides the unit's current formation, for checking a
    resize before it is committed. Never mutates anything.
    """
    subject = None
    others = []
    for unit in units:
        if unit.id == unit_id:
            subject = unit
        else:
            others.append(unit_rect(unit))
    if subject is None:
        return Check(valid=False, error="Unit not found")

    rect = unit_rect(subject, candidate, formation)
    if overlaps_any(rect, _rect_array(others)):
        return Check(valid=False, error=OVERLAP_ERROR)
    return Check(valid=True)


def clamp_to_surface(
    position: Position,
    size: tuple[float, float],
    surface: tuple[float, float],
) -> Position:
    """Confine a top-left position so the footprint stays on the surface."""
    w, h = size
    sw, sh = surface
    return Position(
        x=max(0, min(position.x, sw - w)),
        y=max(0, min(position.y, sh - h)),
    )


def default_grid_position(index: int) -> Position:
    col = index % SPAWN_GRID_COLUMNS
    row = index // SPAWN_GRID_COLUMNS
    return Position(
        x=SPAWN_GRID_ORIGIN + col * SPAWN_GRID_PITCH,
        y=SPAWN_GRID_ORIGIN + row * SPAWN_GRID_PITCH,
    )


def _in_surface(rect: Rect, surface: tuple[float, float]) -> bool:
    x, y, w, h = rect
    return x >= 0 and y >= 0 and x + w <= surface[0] and y + h <= surface[1]


def find_free_position(
    units: list[Unit],
    size: tuple[float, float],
    surface: tuple[float, float],
    preferred: Position,
    exclude_id: str | None = None,
) -> Position | None:
    """Return ``preferred`` if free, else the first free spot on the surface.

    The scan runs row by row in ``PX_PER_UNIT`` steps. Returns ``None`` when
    the surface has no room for a footprint of this size.
    """
    others = _rect_array(
        unit_rect(u) for u in units if u.id != exclude_id
    )
    w, h = size
    rect = (preferred.x, preferred.y, w, h)
    if _in_surface(rect, surface) and not overlaps_any(rect, others):
        return preferred

    sw, sh = surface
    for y in range(0, int(sh - h) + 1, PX_PER_UNIT):
        for x in range(0, int(sw - w) + 1, PX_PER_UNIT):
            if not overlaps_any((x, y, w, h), others):
                return Position(x=x, y=y)
    return None


def find_adjacent_slot(
    units: list[Unit],
    source: Unit,
    surface: tuple[float, float],
) -> Position:
    """Position for a copy of ``source``: right, left, below, then diagonal.

    The first candidate that is on the surface and clear of every unit wins.
    If none is, the diagonal fallback is clamped to the surface and, when
    that still overlaps, the first free spot on the surface is used instead.
    """
    x, y = source.position.x, source.position.y
    w, h = footprint_of(source.formation)
    others = _rect_array(unit_rect(u) for u in units)
    candidates = [
        Position(x=x + w + DUPLICATE_GAP, y=y),
        Position(x=x - w - DUPLICATE_GAP, y=y),
        Position(x=x, y=y + h + DUPLICATE_GAP),
    ]
    for cand in candidates:
        rect = (cand.x, cand.y, w, h)
        if _in_surface(rect, surface) and not overlaps_any(rect, others):
            return cand

    fallback = clamp_to_surface(
        Position(
            x=x + DUPLICATE_DIAGONAL_OFFSET, y=y + DUPLICATE_DIAGONAL_OFFSET
        ),
        (w, h),
        surface,
    )
    if not overlaps_any((fallback.x, fallback.y, w, h), others):
        return fallback
    free = find_free_position(units, (w, h), surface, fallback)
    return free if free is not None else fallback
