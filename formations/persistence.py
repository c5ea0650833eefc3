"""Durable storage for the battle configuration.

The army model takes a ``Persistence`` at construction and calls
``save(battle)`` after every committed mutation; ``load()`` runs once when
the editor starts (see ``battle.open_battle``).

Two implementations:

  * ``JsonFilePersistence`` — one JSON file on disk. Unreadable or corrupt
    files load as ``None`` (with a warning) so the caller can start a fresh
    battle instead of failing.
  * ``InMemoryPersistence`` — keeps the last saved record in memory; used
    by tests and when no state path is configured.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Protocol

from .models import Battle

logger = logging.getLogger(__name__)


class Persistence(Protocol):
    def load(self) -> Battle | None:
        """Return the stored battle, or None if there is nothing usable."""
        ...

    def save(self, battle: Battle) -> bool:
        """Store the battle. Returns False if it could not be written."""
        ...


class InMemoryPersistence:
    def __init__(self, record: dict | None = None) -> None:
        self.record = record
        self.save_count = 0

    def load(self) -> Battle | None:
        if self.record is None:
            return None
        try:
            return Battle.from_dict(json.loads(json.dumps(self.record)))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Discarding corrupt in-memory battle: %s", e)
            return None

    def save(self, battle: Battle) -> bool:
        self.record = battle.to_dict()
        self.save_count += 1
        return True


class JsonFilePersistence:
    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def load(self) -> Battle | None:
        if not self.path.exists():
            return None
        try:
            with open(self.path) as f:
                data = json.load(f)
            return Battle.from_dict(data)
        except (OSError, KeyError, TypeError, ValueError) as e:
            logger.warning(
                "Failed to load battle config from %s: %s", self.path, e
            )
            return None

    def save(self, battle: Battle) -> bool:
        """Write the battle as indented JSON, creating parent directories."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w") as f:
                json.dump(battle.to_dict(), f, indent=2)
                f.write("\n")
        except OSError as e:
            logger.error("Failed to save battle config to %s: %s", self.path, e)
            return False
        return True
