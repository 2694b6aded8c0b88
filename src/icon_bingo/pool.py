from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List

import yaml

from .errors import ValidationError
from .feasibility import validate_pool
from .models import Icon

logger = logging.getLogger(__name__)

IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".gif", ".bmp", ".webp", ".svg"}
MANIFEST_NAME = "icons.yaml"


def _read_manifest(directory: Path) -> Dict[str, Any]:
    path = directory / MANIFEST_NAME
    if not path.exists():
        return {}
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValidationError(f"{path}: top-level manifest must be a mapping")
    return data


def load_icon_pool(directory: Path) -> List[Icon]:
    """Build the icon pool from the image files in ``directory``.

    The icon id is the file name relative to ``directory``. An optional
    ``icons.yaml`` may hold ``exclude_from_multi_hit: [file names]`` and
    ``names: {file name: display name}``.
    """
    if not directory.is_dir():
        raise FileNotFoundError(f"Icon directory not found: {directory}")
    manifest = _read_manifest(directory)
    excluded = {str(x) for x in manifest.get("exclude_from_multi_hit", []) or []}
    names = {str(k): str(v) for k, v in (manifest.get("names") or {}).items()}

    icons: List[Icon] = []
    for path in sorted(directory.rglob("*")):
        if not path.is_file() or path.suffix.lower() not in IMAGE_SUFFIXES:
            continue
        rel = path.relative_to(directory).as_posix()
        icons.append(
            Icon(
                id=rel,
                name=names.get(rel, path.stem.replace("_", " ").replace("-", " ")),
                image_data=str(path),
                exclude_from_multi_hit=rel in excluded or path.stem in excluded,
            )
        )
    validate_pool(icons)
    logger.info("Loaded %d icons from %s", len(icons), directory)
    return icons
