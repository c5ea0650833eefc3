"""Read-only roster of assignable characters.

The roster is fetched once, outside the core (from the world-building
service or a locally imported dataset), and handed over as a list of
dicts. The model only ever looks characters up by id and computes which of
them are still free to assign.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Iterator


@dataclass(frozen=True)
class Character:
    id: str
    name: str
    description: str = ""

    @staticmethod
    def from_dict(d: dict) -> Character:
        return Character(
            id=d["id"],
            name=d.get("name") or d["id"],
            description=d.get("description") or "",
        )

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "description": self.description}


class Roster:
    """Immutable id -> Character lookup, iterated in insertion order."""

    def __init__(self, characters: Iterable[Character] = ()) -> None:
        by_id: dict[str, Character] = {}
        for c in characters:
            by_id.setdefault(c.id, c)
        self._by_id = MappingProxyType(by_id)

    @staticmethod
    def from_dicts(items: Iterable[dict]) -> Roster:
        return Roster(Character.from_dict(d) for d in items)

    def get(self, character_id: str) -> Character | None:
        return self._by_id.get(character_id)

    def __contains__(self, character_id: object) -> bool:
        return character_id in self._by_id

    def __iter__(self) -> Iterator[Character]:
        return iter(self._by_id.values())

    def __len__(self) -> int:
        return len(self._by_id)

    def search(self, term: str) -> list[Character]:
        """Characters whose name contains ``term``, case-insensitively."""
        term = term.strip().lower()
        if not term:
            return list(self)
        return [c for c in self if term in c.name.lower()]


def load_roster(path: Path | str | None) -> Roster:
    """Read a roster from JSON: a list of characters or ``{"characters": [...]}``.

    No path gives an empty roster. A missing file raises FileNotFoundError.
    """
    if path is None:
        return Roster()
    with open(path) as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("characters", [])
    if not isinstance(data, list):
        raise ValueError(f"Roster file must contain a list of characters: {path}")
    return Roster.from_dicts(data)
