"""Snapshot-based undo/redo over an army's unit list.

A snapshot is a deep copy of the whole unit list plus the point total;
restoring replaces both wholesale. The editor calls ``save_history()``
exactly once per gesture, at gesture start and before the first mutation,
so a drag or resize with any number of preview frames is one undo step.

Because snapshots are taken *before* mutations, the newest state is never
in the stack on its own. The first ``undo()`` from the newest position
therefore records the live state as a tip entry before stepping back, and
``redo()`` can return to it.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Protocol

from .config import DEFAULT_HISTORY_SIZE
from .models import Unit


class Restorable(Protocol):
    def capture(self) -> tuple[list[Unit], int]:
        """Deep copy of the current units and point total."""
        ...

    def restore(self, units: list[Unit], used_points: int) -> None:
        """Replace the current units and point total wholesale."""
        ...


@dataclass
class Snapshot:
    units: list[Unit]
    used_points: int


class HistoryManager:
    def __init__(
        self, target: Restorable, max_size: int = DEFAULT_HISTORY_SIZE
    ) -> None:
        self.target = target
        self.max_size = max_size
        self.snapshots: list[Snapshot] = []
        self.index = -1
        # True once the live state has been pushed as the newest entry.
        self._tip_recorded = False

    def _append(self, snapshot: Snapshot) -> None:
        self.snapshots.append(snapshot)
        self.index = len(self.snapshots) - 1
        if len(self.snapshots) > self.max_size:
            self.snapshots.pop(0)
            self.index -= 1

    def _capture(self) -> Snapshot:
        units, used_points = self.target.capture()
        return Snapshot(units=units, used_points=used_points)

    def _restore(self, snapshot: Snapshot) -> None:
        self.target.restore(copy.deepcopy(snapshot.units), snapshot.used_points)

    def snapshot(self) -> Snapshot:
        """Capture the live state without recording it."""
        return self._capture()

    def save_history(self, snapshot: Snapshot | None = None) -> None:
        """Record the current state, discarding any redo branch.

        ``snapshot`` is a state captured earlier with ``snapshot()``, for
        callers that only record once a command has succeeded. After an
        undo/redo the entry at ``index`` already equals the pre-command
        state, so it is reused instead of pushing a duplicate.
        """
        del self.snapshots[self.index + 1 :]
        if self._tip_recorded:
            self._tip_recorded = False
            return
        self._append(snapshot if snapshot is not None else self._capture())

    @property
    def can_undo(self) -> bool:
        if not self._tip_recorded:
            return bool(self.snapshots)
        return self.index > 0

    @property
    def can_redo(self) -> bool:
        return self.index < len(self.snapshots) - 1

    def undo(self) -> bool:
        """Step back one snapshot. Returns False (no-op) at the oldest."""
        if not self.snapshots:
            return False
        if not self._tip_recorded and self.index == len(self.snapshots) - 1:
            self._append(self._capture())
            self._tip_recorded = True
        if self.index <= 0:
            return False
        self.index -= 1
        self._restore(self.snapshots[self.index])
        return True

    def redo(self) -> bool:
        """Step forward one snapshot. Returns False (no-op) at the newest."""
        if self.index >= len(self.snapshots) - 1:
            return False
        self.index += 1
        self._restore(self.snapshots[self.index])
        return True

    def clear(self) -> None:
        self.snapshots = []
        self.index = -1
        self._tip_recorded = False
