"""Army model: the units of one side and every command that changes them.

``ArmyModel`` owns one ``Army`` inside a shared ``Battle``. All commands
return a ``Result`` instead of raising for conditions the user caused and
can correct (unknown type, count out of range, missing id, unit cap).

Each command builds the changed unit as a new object, validates it, and
only then swaps it into the army, so no observer ever sees a half-applied
update. After every committed change the model recomputes ``used_points``
and hands the whole battle to the injected persistence collaborator.

``used_points`` may exceed ``max_points``; the budget is advisory only
(``battle.validate_army`` reports it, nothing here rejects it).

Character assignment lives here too, because the "a character appears in at
most one unit" rule spans both armies of the battle, which this model can
see through ``self.battle``.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Callable

from .battle import get_army, touch
from .errors import FormationError, LimitError, NotFoundError, ValidationError
from .ids import IdGenerator
from .models import (
    ArmyStats,
    Battle,
    Check,
    Formation,
    Position,
    Result,
    Unit,
    clone_units,
)
from .persistence import InMemoryPersistence, Persistence
from .placement import (
    default_grid_position,
    find_adjacent_slot,
    find_free_position,
    validate_placement,
)
from .roster import Character, Roster
from .sizing import (
    check_unit_size,
    count_from_footprint,
    default_formation_for,
    footprint_of,
    unit_cost,
)
from .unit_types import MAX_UNITS, UNIT_TYPES, get_unit_type

logger = logging.getLogger(__name__)

GENERAL = "general"
SOLDIER = "soldier"
ROLES = (GENERAL, SOLDIER)

ALIGN_SPACING = 20

_SETTABLE_FIELDS = {
    "name",
    "position",
    "formation",
    "soldier_count",
    "general",
    "soldiers",
    "hierarchy",
}
_FIELD_ALIASES = {"soldierCount": "soldier_count"}


def _as_position(value: Any) -> Position:
    if isinstance(value, Position):
        return Position(x=value.x, y=value.y)
    if isinstance(value, dict):
        return Position.from_dict(value)
    x, y = value
    return Position(x=x, y=y)


def _as_formation(value: Any) -> Formation:
    if isinstance(value, Formation):
        formation = Formation(width=value.width, depth=value.depth)
    elif isinstance(value, dict):
        formation = Formation.from_dict(value)
    else:
        width, depth = value
        formation = Formation(width=int(width), depth=int(depth))
    if formation.width < 1 or formation.depth < 1:
        raise ValidationError("Formation width and depth must be positive")
    return formation


class ArmyModel:
    def __init__(
        self,
        battle: Battle,
        player_id: int,
        *,
        persistence: Persistence | None = None,
        id_generator: Callable[[], str] | None = None,
        roster: Roster | None = None,
        surface: tuple[int, int] = (1200, 800),
        max_units: int = MAX_UNITS,
    ) -> None:
        self.battle = battle
        self.player_id = player_id
        self.army = get_army(battle, player_id)
        self.persistence = persistence or InMemoryPersistence()
        self.id_generator = id_generator or IdGenerator()
        if isinstance(self.id_generator, IdGenerator):
            self.id_generator.reserve(u.id for u in battle.all_units())
        self.roster = roster or Roster()
        self.surface = surface
        self.max_units = max_units
        # type -> (soldier_count, formation) used instead of type defaults
        self.default_templates: dict[str, tuple[int, Formation]] = {}

    # -- queries --

    def list_units(self) -> list[Unit]:
        return list(self.army.units)

    def get_unit(self, unit_id: str) -> Unit | None:
        return self.army.find_unit(unit_id)

    @property
    def used_points(self) -> int:
        return self.army.used_points

    @property
    def is_over_budget(self) -> bool:
        return self.army.used_points > self.army.max_points

    def get_army_stats(self) -> ArmyStats:
        stats = ArmyStats(units_by_type={key: 0 for key in UNIT_TYPES})
        for unit in self.army.units:
            stats.total_units += 1
            stats.total_soldiers += unit.soldier_count
            stats.units_by_type[unit.type] = (
                stats.units_by_type.get(unit.type, 0) + 1
            )
            if unit.general:
                stats.generals_assigned += 1
            stats.characters_total += len(unit.character_ids())
        return stats

    def validate_placement(
        self,
        unit_id: str,
        position: Position,
        formation: Formation | None = None,
    ) -> Check:
        return validate_placement(self.army.units, unit_id, position, formation)

    # -- internals --

    def _locate(self, unit_id: str) -> tuple[int, Unit]:
        for i, unit in enumerate(self.army.units):
            if unit.id == unit_id:
                return i, unit
        raise NotFoundError("Unit not found")

    def _check_capacity(self) -> None:
        if len(self.army.units) >= self.max_units:
            raise LimitError(
                f"Cannot exceed {self.max_units} units per army"
            )

    def _commit(self, action: str, unit_id: str | None = None) -> None:
        self.army.recompute_points()
        touch(self.battle)
        self.persistence.save(self.battle)
        logger.debug(
            "%s %s: army %d now %d units, %d/%d points",
            action,
            unit_id or "-",
            self.player_id,
            len(self.army.units),
            self.army.used_points,
            self.army.max_points,
        )

    def _reject(self, action: str, exc: FormationError, data=None) -> Result:
        logger.info("Rejected %s: %s", action, exc)
        return Result.failure(exc, data)

    # -- unit commands --

    def create_unit(self, unit_type: str) -> Result:
        try:
            ut = get_unit_type(unit_type)
            self._check_capacity()
        except FormationError as e:
            return self._reject("create", e)

        template = self.default_templates.get(unit_type)
        if template is not None:
            soldier_count, formation = template[0], copy.copy(template[1])
        else:
            soldier_count = ut.default_size
            formation = Formation(width=ut.default_width, depth=ut.default_depth)

        n = len(self.army.units)
        preferred = default_grid_position(n)
        position = find_free_position(
            self.army.units, footprint_of(formation), self.surface, preferred
        )
        if position is None:
            error = ValidationError(
                f"No free space on the surface for a new {ut.name}"
            )
            return self._reject("create", error)

        unit = Unit(
            id=self.id_generator(),
            type=unit_type,
            name=f"{ut.name} {n + 1}",
            soldier_count=soldier_count,
            formation=formation,
            position=position,
            cost=unit_cost(unit_type, soldier_count),
            hierarchy=n + 1,
        )
        self.army.units.append(unit)
        self._commit("create", unit.id)
        return Result.ok(unit)

    def _apply_updates(self, unit: Unit, changes: dict) -> Unit:
        unknown = set(changes) - _SETTABLE_FIELDS
        if unknown:
            raise ValidationError(
                f"Cannot set field(s): {', '.join(sorted(unknown))}"
            )
        updated = copy.deepcopy(unit)
        if "soldier_count" in changes:
            count = int(changes["soldier_count"])
            check_unit_size(unit.type, count)
            updated.soldier_count = count
            updated.cost = unit_cost(unit.type, count)
            if changes.get("formation") is None:
                updated.formation = default_formation_for(count, unit.type)
        if changes.get("formation") is not None:
            updated.formation = _as_formation(changes["formation"])
        if "position" in changes:
            updated.position = _as_position(changes["position"])
        if "name" in changes:
            updated.name = str(changes["name"])
        if "general" in changes:
            updated.general = changes["general"]
        if "soldiers" in changes:
            updated.soldiers = list(changes["soldiers"])
        if "hierarchy" in changes:
            updated.hierarchy = int(changes["hierarchy"])
        return updated

    def _check_character_changes(self, unit: Unit, updated: Unit) -> None:
        """Apply the assignment rules to characters an update adds."""
        ids = updated.character_ids()
        if len(ids) != len(set(ids)):
            raise ValidationError("A character can only fill one slot in a unit")
        added = set(ids) - set(unit.character_ids())
        if not added:
            return
        held_elsewhere = {
            cid
            for other in self.battle.all_units()
            if other.id != unit.id
            for cid in other.character_ids()
        }
        for character_id in sorted(added):
            if character_id not in self.roster:
                raise NotFoundError(f"Character not found: {character_id}")
            if character_id in held_elsewhere:
                raise ValidationError("Character is already assigned to a unit")

    def update_unit(
        self,
        unit_id: str,
        updates: dict | None = None,
        *,
        confirm_replace: bool = False,
        **fields: Any,
    ) -> Result:
        """Apply a partial update.

        A new ``soldier_count`` is bounds-checked and recomputes ``cost``;
        without an explicit ``formation`` it also gets the canonical one.
        ``general`` and ``soldiers`` follow the same rules as
        ``assign_character``, including ``confirm_replace`` for swapping
        out an existing general. Other fields are applied as given.
        ``cost``, ``id`` and ``type`` cannot be set.
        """
        changes = {**(updates or {}), **fields}
        changes = {_FIELD_ALIASES.get(k, k): v for k, v in changes.items()}
        try:
            index, unit = self._locate(unit_id)
            updated = self._apply_updates(unit, changes)
            self._check_character_changes(unit, updated)
        except FormationError as e:
            return self._reject(f"update of {unit_id}", e)
        replacing = updated.general not in (None, unit.general)
        if replacing and unit.general is not None and not confirm_replace:
            return Result.failure(
                ValidationError("Unit already has a general; confirm to replace"),
                data={"needs_confirmation": True, "current": unit.general},
            )
        self.army.units[index] = updated
        self._commit("update", unit_id)
        return Result.ok(updated)

    def resize_unit(self, unit_id: str, width: float, height: float) -> Result:
        """Resize to a pixel footprint, deriving formation and soldier count."""
        formation, soldier_count = count_from_footprint(width, height)
        return self.update_unit(
            unit_id, soldier_count=soldier_count, formation=formation
        )

    def remove_unit(self, unit_id: str) -> Result:
        try:
            index, _unit = self._locate(unit_id)
        except FormationError as e:
            return self._reject(f"removal of {unit_id}", e)
        self.army.units.pop(index)
        self._commit("remove", unit_id)
        return Result.ok()

    def duplicate_unit(self, unit_id: str) -> Result:
        """Copy a unit next to the original, without its characters."""
        try:
            _index, unit = self._locate(unit_id)
            self._check_capacity()
        except FormationError as e:
            return self._reject(f"duplicate of {unit_id}", e)

        clone = copy.deepcopy(unit)
        clone.id = self.id_generator()
        clone.name = f"{unit.name} (Copy)"
        clone.general = None
        clone.soldiers = []
        clone.position = find_adjacent_slot(self.army.units, unit, self.surface)
        self.army.units.append(clone)
        self._commit("duplicate", clone.id)
        return Result.ok(clone)

    # -- bulk shape/position commands --

    def copy_shape_to_all_of_type(self, unit_id: str) -> Result:
        """Give every other unit of the same type this unit's shape.

        Units whose new footprint would overlap a neighbour keep their old
        shape and are listed under ``data["skipped"]``.
        """
        try:
            _index, source = self._locate(unit_id)
        except FormationError as e:
            return self._reject(f"shape copy from {unit_id}", e)

        working = list(self.army.units)
        updated_ids, skipped_ids = [], []
        for i, unit in enumerate(working):
            if unit.type != source.type or unit.id == source.id:
                continue
            check = validate_placement(
                working, unit.id, unit.position, source.formation
            )
            if not check.valid:
                skipped_ids.append(unit.id)
                continue
            reshaped = copy.deepcopy(unit)
            reshaped.formation = copy.copy(source.formation)
            reshaped.soldier_count = source.soldier_count
            reshaped.cost = source.cost
            working[i] = reshaped
            updated_ids.append(unit.id)

        if updated_ids:
            self.army.units = working
            self._commit("copy shape", unit_id)
        return Result.ok({"updated": updated_ids, "skipped": skipped_ids})

    def align_to_right(
        self, unit_id: str, spacing: float = ALIGN_SPACING
    ) -> Result:
        """Line up same-type units left to right, starting after this one.

        Units are taken in army order. A unit whose slot would overlap
        something or leave the surface stays where it is and is listed
        under ``data["skipped"]``; the next unit tries the same slot.
        """
        try:
            _index, source = self._locate(unit_id)
        except FormationError as e:
            return self._reject(f"align from {unit_id}", e)

        source_w, _source_h = footprint_of(source.formation)
        cursor_x = source.position.x + source_w + spacing
        y = source.position.y
        surface_w, surface_h = self.surface

        working = list(self.army.units)
        moved_ids, skipped_ids = [], []
        for i, unit in enumerate(working):
            if unit.type != source.type or unit.id == source.id:
                continue
            w, h = footprint_of(unit.formation)
            candidate = Position(x=cursor_x, y=y)
            fits = cursor_x + w <= surface_w and y + h <= surface_h
            if not fits or not validate_placement(
                working, unit.id, candidate
            ).valid:
                skipped_ids.append(unit.id)
                continue
            moved = copy.deepcopy(unit)
            moved.position = candidate
            working[i] = moved
            moved_ids.append(unit.id)
            cursor_x += w + spacing

        if moved_ids:
            self.army.units = working
            self._commit("align", unit_id)
        return Result.ok({"moved": moved_ids, "skipped": skipped_ids})

    def set_default_spawn_template(self, unit_id: str) -> Result:
        """Future spawns of this unit's type copy its count and formation."""
        try:
            _index, unit = self._locate(unit_id)
        except FormationError as e:
            return self._reject(f"default template from {unit_id}", e)
        self.default_templates[unit.type] = (
            unit.soldier_count,
            copy.copy(unit.formation),
        )
        logger.debug(
            "Default %s spawn is now %d soldiers in %dx%d",
            unit.type,
            unit.soldier_count,
            unit.formation.width,
            unit.formation.depth,
        )
        return Result.ok(
            {
                "type": unit.type,
                "soldier_count": unit.soldier_count,
                "formation": copy.copy(unit.formation),
            }
        )

    # -- characters --

    def assigned_character_ids(self) -> set[str]:
        """Every character referenced by any unit in either army."""
        return {
            cid for unit in self.battle.all_units() for cid in unit.character_ids()
        }

    def available_characters(self, search: str = "") -> list[Character]:
        """Roster characters not yet assigned anywhere in the battle.

        ``search`` narrows the list to names containing it.
        """
        taken = self.assigned_character_ids()
        return [c for c in self.roster.search(search) if c.id not in taken]

    def assign_character(
        self,
        unit_id: str,
        character_id: str,
        role: str,
        confirm_replace: bool = False,
    ) -> Result:
        """Assign a roster character as the unit's general or as a soldier.

        Replacing an existing general needs ``confirm_replace=True``; without
        it the result fails with ``data["needs_confirmation"]`` set and the
        current general's id under ``data["current"]``.
        """
        try:
            if role not in ROLES:
                raise ValidationError(f"Unknown role: {role}")
            index, unit = self._locate(unit_id)
            if character_id not in self.roster:
                raise NotFoundError(f"Character not found: {character_id}")
            if character_id in self.assigned_character_ids():
                raise ValidationError("Character is already assigned to a unit")
        except FormationError as e:
            return self._reject(f"assignment to {unit_id}", e)

        if role == GENERAL and unit.general is not None and not confirm_replace:
            return Result.failure(
                ValidationError("Unit already has a general; confirm to replace"),
                data={"needs_confirmation": True, "current": unit.general},
            )

        updated = copy.deepcopy(unit)
        if role == GENERAL:
            updated.general = character_id
        else:
            updated.soldiers.append(character_id)
        self.army.units[index] = updated
        self._commit(f"assign {role} {character_id} to", unit_id)
        return Result.ok(updated)

    def remove_character(
        self, unit_id: str, role: str, character_id: str | None = None
    ) -> Result:
        try:
            if role not in ROLES:
                raise ValidationError(f"Unknown role: {role}")
            index, unit = self._locate(unit_id)
            if role == GENERAL and unit.general is None:
                raise NotFoundError("No general assigned")
            if role == SOLDIER and character_id not in unit.soldiers:
                raise NotFoundError(f"Character not found: {character_id}")
        except FormationError as e:
            return self._reject(f"character removal from {unit_id}", e)

        updated = copy.deepcopy(unit)
        if role == GENERAL:
            updated.general = None
        else:
            updated.soldiers = [s for s in unit.soldiers if s != character_id]
        self.army.units[index] = updated
        self._commit(f"remove {role} from", unit_id)
        return Result.ok(updated)

    # -- history support --

    def capture(self) -> tuple[list[Unit], int]:
        return clone_units(self.army.units), self.army.used_points

    def restore(self, units: list[Unit], used_points: int) -> None:
        """Replace the unit list and point total wholesale.

        Characters the other army took since the snapshot was captured are
        dropped from the restored units.
        """
        restored = clone_units(units)
        held_elsewhere = {
            cid
            for army in self.battle.armies
            if army is not self.army
            for unit in army.units
            for cid in unit.character_ids()
        }
        for unit in restored:
            dropped = [c for c in unit.character_ids() if c in held_elsewhere]
            if not dropped:
                continue
            if unit.general in held_elsewhere:
                unit.general = None
            unit.soldiers = [s for s in unit.soldiers if s not in held_elsewhere]
            logger.info(
                "Dropped %s from %s on restore; assigned in another army",
                ", ".join(dropped),
                unit.id,
            )
        self.army.units = restored
        self.army.used_points = used_points
        touch(self.battle)
        self.persistence.save(self.battle)
        logger.debug(
            "Restored army %d to %d units", self.player_id, len(units)
        )
