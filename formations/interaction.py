"""Pointer/keyboard interaction as a finite state machine.

Two layers:

  * ``transition(state, event, units, surface)`` — a pure function from the
    current gesture state and an input event to the next state plus a list
    of effects. It reads the committed units but never changes them, so it
    can be driven from tests without any input surface.
  * ``InteractionController`` — the adapter that owns the current state,
    feeds events through ``transition`` and applies the effects: it saves
    history at gesture start, commits through the ``ArmyModel`` at gesture
    end, and calls the external ``on_change`` callback so the view can
    redraw. It also exposes the Idle-only commands (spawn, duplicate,
    delete, bulk shape/position commands, undo/redo, character assignment).

States are ``Idle`` (with an optional selection), ``Dragging`` and
``Resizing``. Between pointer-down and pointer-up only the state's preview
fields change; the army is mutated once, on a valid pointer-up. Invalid
pointer-ups and ``Cancel`` produce a ``Revert`` effect back to the
pre-gesture geometry.

Capability flags on the controller (``history_enabled``,
``characters_enabled``) switch off undo/redo and character assignment
without a separate code path.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import Callable, Sequence, Union

from .army import GENERAL, ArmyModel
from .errors import FormationError, NotFoundError, ValidationError
from .history import HistoryManager, Snapshot
from .models import Formation, Position, Result, Unit
from .placement import clamp_to_surface, validate_placement
from .roster import Character
from .sizing import count_from_footprint, footprint_of, validate_unit_size
from .unit_types import MIN_FOOTPRINT

logger = logging.getLogger(__name__)

CORNERS = ("nw", "ne", "sw", "se")

# -- states --


@dataclass(frozen=True)
class Idle:
    selected: str | None = None


@dataclass(frozen=True)
class Dragging:
    unit_id: str
    origin: Position  # pre-gesture position
    grab_dx: float  # pointer offset inside the footprint
    grab_dy: float
    preview: Position
    valid: bool = True


@dataclass(frozen=True)
class Resizing:
    unit_id: str
    corner: str
    start_x: float
    start_y: float
    origin: Position
    orig_width: float
    orig_height: float
    preview: Position
    width: float
    height: float
    soldier_count: int


State = Union[Idle, Dragging, Resizing]

# -- events --


@dataclass(frozen=True)
class PointerDown:
    x: float
    y: float
    unit_id: str | None = None  # None: empty surface
    corner: str | None = None  # None: unit body


@dataclass(frozen=True)
class PointerMove:
    x: float
    y: float


@dataclass(frozen=True)
class PointerUp:
    x: float
    y: float


@dataclass(frozen=True)
class Cancel:
    pass


Event = Union[PointerDown, PointerMove, PointerUp, Cancel]

# -- effects --


@dataclass(frozen=True)
class SaveHistory:
    pass


@dataclass(frozen=True)
class Select:
    unit_id: str | None


@dataclass(frozen=True)
class Preview:
    unit_id: str
    position: Position
    width: float
    height: float
    valid: bool
    soldier_count: int


@dataclass(frozen=True)
class CommitPosition:
    unit_id: str
    position: Position


@dataclass(frozen=True)
class CommitResize:
    unit_id: str
    soldier_count: int
    formation: Formation
    position: Position


@dataclass(frozen=True)
class Revert:
    unit_id: str
    position: Position
    width: float
    height: float
    error: str | None = None
    error_kind: str | None = None


Effect = Union[SaveHistory, Select, Preview, CommitPosition, CommitResize, Revert]


def _find(units: Sequence[Unit], unit_id: str) -> Unit | None:
    for unit in units:
        if unit.id == unit_id:
            return unit
    return None


def _start_gesture(
    state: Idle, event: PointerDown, units: Sequence[Unit]
) -> tuple[State, list[Effect]]:
    unit = _find(units, event.unit_id) if event.unit_id else None
    if unit is None:
        if state.selected is None:
            return state, []
        return Idle(), [Select(None)]

    effects: list[Effect] = [Select(unit.id), SaveHistory()]
    origin = Position(x=unit.position.x, y=unit.position.y)
    if event.corner is None:
        dragging = Dragging(
            unit_id=unit.id,
            origin=origin,
            grab_dx=event.x - origin.x,
            grab_dy=event.y - origin.y,
            preview=origin,
        )
        return dragging, effects

    if event.corner not in CORNERS:
        raise ValueError(f"Unknown resize corner: {event.corner}")
    w, h = footprint_of(unit.formation)
    resizing = Resizing(
        unit_id=unit.id,
        corner=event.corner,
        start_x=event.x,
        start_y=event.y,
        origin=origin,
        orig_width=w,
        orig_height=h,
        preview=origin,
        width=w,
        height=h,
        soldier_count=unit.soldier_count,
    )
    return resizing, effects


def _drag_candidate(
    state: Dragging, x: float, y: float, unit: Unit, surface
) -> Position:
    return clamp_to_surface(
        Position(x=x - state.grab_dx, y=y - state.grab_dy),
        footprint_of(unit.formation),
        surface,
    )


def _revert(state: Dragging | Resizing, units, error=None) -> Revert:
    if isinstance(state, Resizing):
        w, h = state.orig_width, state.orig_height
    else:
        unit = _find(units, state.unit_id)
        w, h = footprint_of(unit.formation) if unit else (0, 0)
    return Revert(
        unit_id=state.unit_id,
        position=state.origin,
        width=w,
        height=h,
        error=error,
        error_kind="ValidationError" if error else None,
    )


def _drag(
    state: Dragging, event: PointerMove | PointerUp, units, surface
) -> tuple[State, list[Effect]]:
    unit = _find(units, state.unit_id)
    if unit is None:
        return Idle(), [Select(None)]
    candidate = _drag_candidate(state, event.x, event.y, unit, surface)
    # Overlap only colours the preview; it never stops it from moving.
    check = validate_placement(list(units), unit.id, candidate)

    if isinstance(event, PointerMove):
        w, h = footprint_of(unit.formation)
        preview = Preview(
            unit_id=unit.id,
            position=candidate,
            width=w,
            height=h,
            valid=check.valid,
            soldier_count=unit.soldier_count,
        )
        moved = dataclasses.replace(state, preview=candidate, valid=check.valid)
        return moved, [preview]

    done = Idle(selected=unit.id)
    if not check.valid:
        return done, [_revert(state, units, check.error)]
    if candidate == state.origin:
        return done, []
    return done, [CommitPosition(unit_id=unit.id, position=candidate)]


def _resize_geometry(
    state: Resizing, x: float, y: float
) -> tuple[Position, float, float]:
    """New (position, width, height); the edges opposite the corner stay put."""
    dx = x - state.start_x
    dy = y - state.start_y
    grows_right = state.corner in ("ne", "se")
    grows_down = state.corner in ("sw", "se")

    width = state.orig_width + dx if grows_right else state.orig_width - dx
    height = state.orig_height + dy if grows_down else state.orig_height - dy
    width = max(MIN_FOOTPRINT, width)
    height = max(MIN_FOOTPRINT, height)

    left = state.origin.x
    if not grows_right:
        left = state.origin.x + state.orig_width - width
    top = state.origin.y
    if not grows_down:
        top = state.origin.y + state.orig_height - height
    return Position(x=left, y=top), width, height


def _resize(
    state: Resizing, event: PointerMove | PointerUp, units
) -> tuple[State, list[Effect]]:
    unit = _find(units, state.unit_id)
    if unit is None:
        return Idle(), [Select(None)]
    position, width, height = _resize_geometry(state, event.x, event.y)
    formation, soldier_count = count_from_footprint(width, height)

    if isinstance(event, PointerMove):
        size_ok = validate_unit_size(unit.type, soldier_count).valid
        preview = Preview(
            unit_id=unit.id,
            position=position,
            width=width,
            height=height,
            valid=size_ok,
            soldier_count=soldier_count,
        )
        resized = dataclasses.replace(
            state,
            preview=position,
            width=width,
            height=height,
            soldier_count=soldier_count,
        )
        return resized, [preview]

    done = Idle(selected=unit.id)
    # Footprints are clamped, so the inverse mapping of an untouched unit
    # need not give back its formation.
    if (position, width, height) == (
        state.origin,
        state.orig_width,
        state.orig_height,
    ):
        return done, []
    size_check = validate_unit_size(unit.type, soldier_count)
    if not size_check.valid:
        return done, [_revert(state, units, size_check.error)]
    placement = validate_placement(list(units), unit.id, position, formation)
    if not placement.valid:
        return done, [_revert(state, units, placement.error)]
    if formation == unit.formation and position == state.origin:
        return done, []
    commit = CommitResize(
        unit_id=unit.id,
        soldier_count=soldier_count,
        formation=formation,
        position=position,
    )
    return done, [commit]


def transition(
    state: State,
    event: Event,
    units: Sequence[Unit],
    surface: tuple[float, float],
) -> tuple[State, list[Effect]]:
    """Next interaction state and the effects the adapter must apply."""
    if isinstance(event, Cancel):
        if isinstance(state, Idle):
            if state.selected is None:
                return state, []
            return Idle(), [Select(None)]
        return Idle(selected=state.unit_id), [_revert(state, units)]

    if isinstance(state, Idle):
        if isinstance(event, PointerDown):
            return _start_gesture(state, event, units)
        return state, []

    if isinstance(state, Dragging):
        if isinstance(event, (PointerMove, PointerUp)):
            return _drag(state, event, units, surface)
        return state, []

    if isinstance(state, Resizing):
        if isinstance(event, (PointerMove, PointerUp)):
            return _resize(state, event, units)
        return state, []

    raise TypeError(f"Unknown interaction state: {state!r}")


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PendingConfirmation:
    """A general assignment waiting for the user to confirm a replacement."""

    unit_id: str
    character_id: str
    current_general: str


class InteractionController:
    def __init__(
        self,
        army: ArmyModel,
        history: HistoryManager | None = None,
        *,
        history_enabled: bool = True,
        characters_enabled: bool = True,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self.army = army
        if history_enabled and history is None:
            history = HistoryManager(army)
        self.history = history if history_enabled else None
        self.characters_enabled = characters_enabled
        self.on_change = on_change
        self.state: State = Idle()
        self.preview: Preview | None = None
        self.pending: PendingConfirmation | None = None
        self.last_error: Result | None = None

    # -- state queries --

    @property
    def selected(self) -> str | None:
        if isinstance(self.state, Idle):
            return self.state.selected
        return self.state.unit_id

    @property
    def is_idle(self) -> bool:
        return isinstance(self.state, Idle)

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change()

    # -- gesture events --

    def handle(self, event: Event) -> list[Effect]:
        """Feed one input event through the state machine and apply effects."""
        self.last_error = None
        if isinstance(event, Cancel):
            self.pending = None
        self.state, effects = transition(
            self.state, event, self.army.army.units, self.army.surface
        )
        if not isinstance(self.state, (Dragging, Resizing)):
            self.preview = None
        for effect in effects:
            self._apply(effect)
        self._notify()
        return effects

    def _apply(self, effect: Effect) -> None:
        if isinstance(effect, SaveHistory):
            if self.history is not None:
                self.history.save_history()
        elif isinstance(effect, Preview):
            self.preview = effect
        elif isinstance(effect, CommitPosition):
            result = self.army.update_unit(
                effect.unit_id, position=effect.position
            )
            if not result.success:
                self.last_error = result
        elif isinstance(effect, CommitResize):
            result = self.army.update_unit(
                effect.unit_id,
                soldier_count=effect.soldier_count,
                formation=effect.formation,
                position=effect.position,
            )
            if not result.success:
                self.last_error = result
        elif isinstance(effect, Revert):
            self.preview = None
            if effect.error:
                logger.info("Gesture on %s reverted: %s", effect.unit_id, effect.error)
                self.last_error = Result(
                    success=False,
                    error=effect.error,
                    error_kind=effect.error_kind,
                )

    # -- Idle-only commands --

    def _guard(self) -> None:
        if not self.is_idle:
            raise ValidationError("Finish the current drag or resize first")

    def _run(
        self, action: Callable[[], Result], record_history: bool = True
    ) -> Result:
        self.last_error = None
        try:
            self._guard()
        except FormationError as e:
            return Result.failure(e)
        before = None
        if record_history and self.history is not None:
            before = self.history.snapshot()
        result = action()
        if not result.success:
            self.last_error = result
        elif before is not None and before != Snapshot(*self.army.capture()):
            self.history.save_history(before)
        self._notify()
        return result

    def _selected_id(self) -> str:
        if self.selected is None:
            raise NotFoundError("No unit selected")
        return self.selected

    def _on_selected(
        self, action: Callable[[str], Result], record_history: bool = True
    ) -> Result:
        try:
            unit_id = self._selected_id()
        except FormationError as e:
            return Result.failure(e)
        return self._run(lambda: action(unit_id), record_history)

    def select(self, unit_id: str | None) -> None:
        if self.is_idle:
            self.state = Idle(selected=unit_id)
            self._notify()

    def spawn(self, unit_type: str) -> Result:
        result = self._run(lambda: self.army.create_unit(unit_type))
        if result.success:
            self.state = Idle(selected=result.data.id)
        return result

    def duplicate_selected(self) -> Result:
        result = self._on_selected(self.army.duplicate_unit)
        if result.success:
            self.state = Idle(selected=result.data.id)
        return result

    def delete_selected(self) -> Result:
        result = self._on_selected(self.army.remove_unit)
        if result.success:
            self.state = Idle()
        return result

    def copy_shape_to_all_of_type(self) -> Result:
        return self._on_selected(self.army.copy_shape_to_all_of_type)

    def align_to_right(self) -> Result:
        return self._on_selected(self.army.align_to_right)

    def set_default_spawn_template(self) -> Result:
        return self._on_selected(
            self.army.set_default_spawn_template, record_history=False
        )

    def _step_history(self, step: Callable[[], bool]) -> Result:
        try:
            self._guard()
            if self.history is None:
                raise ValidationError("Undo/redo is disabled")
        except FormationError as e:
            return Result.failure(e)
        changed = step()
        selected = self.selected
        if selected is not None and self.army.get_unit(selected) is None:
            self.state = Idle()
        self._notify()
        return Result.ok(changed)

    def undo(self) -> Result:
        return self._step_history(lambda: self.history.undo())

    def redo(self) -> Result:
        return self._step_history(lambda: self.history.redo())

    # -- characters --

    def available_characters(self, search: str = "") -> list[Character]:
        return self.army.available_characters(search)

    def _check_characters_enabled(self) -> None:
        if not self.characters_enabled:
            raise ValidationError("Character assignment is disabled")

    def assign_character(
        self, character_id: str, role: str, unit_id: str | None = None
    ) -> Result:
        """Assign to ``unit_id`` (default: the selection).

        Assigning a general to a unit that already has one does not replace
        it; the request is parked in ``self.pending`` until
        ``confirm_pending()`` or ``reject_pending()``.
        """
        self.pending = None
        try:
            self._check_characters_enabled()
            self._guard()
            unit_id = unit_id or self._selected_id()
        except FormationError as e:
            return Result.failure(e)

        result = self._run(
            lambda: self.army.assign_character(unit_id, character_id, role)
        )
        if result.data and result.data.get("needs_confirmation"):
            self.pending = PendingConfirmation(
                unit_id=unit_id,
                character_id=character_id,
                current_general=result.data["current"],
            )
        return result

    def confirm_pending(self) -> Result:
        pending = self.pending
        if pending is None:
            return Result.failure(NotFoundError("Nothing to confirm"))
        self.pending = None
        return self._run(
            lambda: self.army.assign_character(
                pending.unit_id,
                pending.character_id,
                GENERAL,
                confirm_replace=True,
            )
        )

    def reject_pending(self) -> None:
        self.pending = None
        self._notify()

    def remove_character(
        self,
        role: str,
        character_id: str | None = None,
        unit_id: str | None = None,
    ) -> Result:
        try:
            self._check_characters_enabled()
            self._guard()
            unit_id = unit_id or self._selected_id()
        except FormationError as e:
            return Result.failure(e)
        return self._run(
            lambda: self.army.remove_character(unit_id, role, character_id)
        )
