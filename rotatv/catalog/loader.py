"""
Catalog loading from YAML or JSON files.

Expected layout:

    vods:
      - id: "gt-01"
        label: "Ganon's Tower Any%"
        duration: "PT1H3M20S"     # or plain seconds
        path: "D:/vods/gt-01.mp4"
        scene_item: "16x9ph"
        include_in_rotation: true
    interstitials:
      - {id: "toast", label: "Toast", duration: 12, path: "..."}
    special_interstitial: {id: "auw", label: "Everybody Wow", duration: 30}
    fallback: {id: "room-grind", label: "Room Grind", duration: 600}
    rooms:
      - {id: "101", label: "Big Key Room", group: "Eastern Palace", duration: 25}
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from rotatv.catalog.models import Catalog, MediaItem

logger = logging.getLogger(__name__)


class CatalogLoadError(Exception):
    """Catalog file is missing or malformed."""


def parse_duration(value: Any) -> Optional[float]:
    """
    Parse a duration into seconds.

    Accepts numbers, "HH:MM:SS" / "MM:SS" strings and ISO 8601 durations
    such as "PT3M44S".
    """
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value) if value > 0 else None

    text = str(value).strip()
    if not text:
        return None

    if ":" in text:
        try:
            parts = [float(p) for p in text.split(":")]
        except ValueError:
            logger.warning(f"Could not parse duration '{text}'")
            return None
        total = 0.0
        for part in parts:
            total = total * 60 + part
        return total if total > 0 else None

    if text.upper().startswith("PT"):
        body = text[2:].upper()
        total = 0.0
        for amount, unit in re.findall(r"(\d+(?:\.\d+)?)([HMS])", body):
            total += float(amount) * {"H": 3600, "M": 60, "S": 1}[unit]
        return total if total > 0 else None

    try:
        seconds = float(text)
    except ValueError:
        logger.warning(f"Could not parse duration '{text}'")
        return None
    return seconds if seconds > 0 else None


def _build_item(raw: Dict[str, Any], default_rotation: bool = True) -> MediaItem:
    if "id" not in raw:
        raise CatalogLoadError(f"Catalog entry without an id: {raw}")

    item_id = str(raw["id"])
    duration = parse_duration(raw.get("duration", raw.get("length")))
    if duration is None:
        raise CatalogLoadError(f"Catalog entry {item_id} has no usable duration")

    label = str(raw.get("label") or raw.get("chat_name") or item_id)
    if raw.get("group"):
        label = f"{raw['group']} - {label}"

    return MediaItem(
        id=item_id,
        label=label,
        duration_seconds=duration,
        source_ref=str(raw.get("path") or raw.get("source_ref") or ""),
        include_in_rotation=bool(raw.get("include_in_rotation", default_rotation)),
        scene_item=raw.get("scene_item"),
        loops=int(raw.get("loops", 1)),
    )


def _build_list(entries: Any, section: str, default_rotation: bool = True) -> List[MediaItem]:
    if entries is None:
        return []
    if not isinstance(entries, list):
        raise CatalogLoadError(f"Catalog section '{section}' must be a list")

    items: List[MediaItem] = []
    seen: set[str] = set()
    for raw in entries:
        item = _build_item(raw, default_rotation)
        if item.id in seen:
            logger.warning(f"Duplicate id '{item.id}' in catalog section '{section}', keeping the first")
            continue
        seen.add(item.id)
        items.append(item)
    return items


def catalog_from_dict(data: Dict[str, Any]) -> Catalog:
    """Build a Catalog from already-parsed data."""
    special = data.get("special_interstitial")
    fallback = data.get("fallback")

    return Catalog(
        vods=_build_list(data.get("vods"), "vods"),
        interstitials=_build_list(data.get("interstitials"), "interstitials", default_rotation=False),
        special_interstitial=_build_item(special, default_rotation=False) if special else None,
        fallback=_build_item(fallback, default_rotation=False) if fallback else None,
        rooms=_build_list(data.get("rooms"), "rooms", default_rotation=False),
    )


def load_catalog(path: str | Path) -> Catalog:
    """
    Load the media catalog.

    Args:
        path: YAML (.yaml/.yml) or JSON file.

    Returns:
        Parsed catalog.

    Raises:
        CatalogLoadError: If the file is missing or malformed.
    """
    catalog_path = Path(path)
    if not catalog_path.exists():
        raise CatalogLoadError(f"Catalog file not found: {catalog_path}")

    try:
        with open(catalog_path, encoding="utf-8") as f:
            if catalog_path.suffix.lower() == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise CatalogLoadError(f"Could not read catalog {catalog_path}: {e}") from e

    if not isinstance(data, dict):
        raise CatalogLoadError(f"Catalog {catalog_path} must contain a mapping")

    catalog = catalog_from_dict(data)
    logger.info(
        f"Catalog loaded from {catalog_path}: {len(catalog.vods)} vods "
        f"({len(catalog.rotation_items)} in rotation), "
        f"{len(catalog.interstitials)} interstitials, {len(catalog.rooms)} rooms"
    )
    return catalog
