"""PNG snapshots of one army that carry the whole battle.

Export renders the army on screen and saves it as a PNG with two text
chunks:

  * ``tactical_tangle_battle`` holds a versioned envelope,
    ``{"format": 1, "player": <shown army>, "battle": <battle record>}``.
  * ``Description`` holds a short per-army summary that image viewers show
    in their metadata panel.

Import takes those PNGs or a plain battle record in the JSON format
``JsonFilePersistence`` writes, and returns a ``BattleSnapshot``. Records
from a newer format, or ones that do not parse as a battle, raise
``ValueError``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from PIL import Image
from PIL.PngImagePlugin import PngInfo

from formations.models import Battle

logger = logging.getLogger(__name__)

METADATA_KEY = "tactical_tangle_battle"
SUMMARY_KEY = "Description"
SNAPSHOT_FORMAT = 1


@dataclass
class BattleSnapshot:
    battle: Battle
    # Army on screen at export; plain JSON records carry none.
    player_id: int = 0


def summarize(battle: Battle) -> str:
    """Battle name, then units and points for each army."""
    lines = [battle.name]
    for army in battle.armies:
        lines.append(
            f"{army.player_name}: {len(army.units)} units, "
            f"{army.used_points}/{army.max_points} points"
        )
    return "\n".join(lines)


def save_battle_png(
    img: Image.Image, battle: Battle, path: str, player_id: int = 0
) -> None:
    envelope = {
        "format": SNAPSHOT_FORMAT,
        "player": player_id,
        "battle": battle.to_dict(),
    }
    info = PngInfo()
    info.add_text(METADATA_KEY, json.dumps(envelope))
    info.add_text(SUMMARY_KEY, summarize(battle))
    img.save(path, pnginfo=info)
    logger.info("Exported battle %s (army %d) to %s", battle.id, player_id, path)


def _parse_battle(record, source: str) -> Battle:
    try:
        return Battle.from_dict(record)
    except (KeyError, TypeError, ValueError) as e:
        raise ValueError(f"{source} is not a valid battle record: {e}") from e


def _open_envelope(envelope: dict, source: str) -> BattleSnapshot:
    version = envelope.get("format")
    if not isinstance(version, int) or version > SNAPSHOT_FORMAT:
        raise ValueError(
            f"{source} uses unsupported snapshot format {version!r}"
        )
    player_id = envelope.get("player", 0)
    if player_id not in (0, 1):
        raise ValueError(f"{source} names unknown army {player_id!r}")
    battle = _parse_battle(envelope.get("battle"), source)
    return BattleSnapshot(battle=battle, player_id=player_id)


def load_battle_png(path: str) -> BattleSnapshot:
    with Image.open(path) as img:
        text = getattr(img, "text", None) or {}
        raw = text.get(METADATA_KEY)
    if raw is None:
        raise ValueError(
            f"{path} has no embedded battle; only editor exports can be imported"
        )
    try:
        envelope = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"{path} has a damaged battle record: {e}") from e
    if not isinstance(envelope, dict):
        raise ValueError(f"{path} is not a valid battle record")
    return _open_envelope(envelope, path)


def load_battle_json(path: str) -> BattleSnapshot:
    """Read a saved battle, or an envelope copied out of a snapshot."""
    with open(path) as f:
        record = json.load(f)
    if isinstance(record, dict) and "format" in record:
        return _open_envelope(record, path)
    return BattleSnapshot(battle=_parse_battle(record, path))


_LOADERS = {".png": load_battle_png, ".json": load_battle_json}


def load_battle(path: str) -> BattleSnapshot:
    suffix = Path(path).suffix.lower()
    loader = _LOADERS.get(suffix)
    if loader is None:
        raise ValueError(f"Cannot import '{suffix}' files: {path}")
    return loader(path)
