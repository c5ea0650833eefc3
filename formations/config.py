"""Editor configuration.

Settings come from an optional JSON file and are overridden by the
editor's command-line flags. Every field has a default, so a missing file
(or an empty one) yields a working configuration.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from pathlib import Path

from .unit_types import MAX_UNITS

DEFAULT_SURFACE_WIDTH = 1200
DEFAULT_SURFACE_HEIGHT = 800
DEFAULT_HISTORY_SIZE = 50


@dataclass
class EditorConfig:
    surface_width: int = DEFAULT_SURFACE_WIDTH
    surface_height: int = DEFAULT_SURFACE_HEIGHT
    max_history_size: int = DEFAULT_HISTORY_SIZE
    max_units: int = MAX_UNITS
    history_enabled: bool = True
    characters_enabled: bool = True
    state_path: str | None = None
    roster_path: str | None = None
    log_level: str = "INFO"

    @property
    def surface(self) -> tuple[int, int]:
        return (self.surface_width, self.surface_height)

    @staticmethod
    def from_dict(d: dict) -> EditorConfig:
        return EditorConfig(
            surface_width=int(d.get("surface_width", DEFAULT_SURFACE_WIDTH)),
            surface_height=int(
                d.get("surface_height", DEFAULT_SURFACE_HEIGHT)
            ),
            max_history_size=int(
                d.get("max_history_size", DEFAULT_HISTORY_SIZE)
            ),
            max_units=int(d.get("max_units", MAX_UNITS)),
            history_enabled=bool(d.get("history_enabled", True)),
            characters_enabled=bool(d.get("characters_enabled", True)),
            state_path=d.get("state_path"),
            roster_path=d.get("roster_path"),
            log_level=str(d.get("log_level", "INFO")).upper(),
        )

    def to_dict(self) -> dict:
        return asdict(self)


def load_config(path: Path | str | None) -> EditorConfig:
    """Load an ``EditorConfig`` from JSON; a missing file gives defaults.

    Raises ValueError if the file exists but is not a JSON object.
    """
    if path is None:
        return EditorConfig()
    path = Path(path)
    if not path.exists():
        return EditorConfig()
    with open(path) as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a JSON object: {path}")
    return EditorConfig.from_dict(data)
