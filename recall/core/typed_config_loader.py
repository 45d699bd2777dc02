"""
Typed config loader: parses the tracking YAML file into a TrackingConfig.

The file is a plain mapping::

    tracked_files:
      - Ideas/Spaced repetition.md
      - Trails/Reading list.md
"""

import logging
from pathlib import Path
from typing import Any, Dict

import yaml
from pydantic import ValidationError

from .typed_config import TrackingConfig

logger = logging.getLogger(__name__)


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            content = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.error("Failed to load %s: %s", path, e)
        return {}
    if not isinstance(content, dict):
        return {}
    return content


def load_tracking_config(path: Path) -> TrackingConfig:
    """Parse the tracking file, falling back to an empty config."""
    raw = _load_yaml(Path(path))
    tracked = raw.get("tracked_files") or []
    if not isinstance(tracked, list):
        logger.warning("tracked_files in %s is not a list, ignoring", path)
        return TrackingConfig()

    try:
        return TrackingConfig(tracked_files=[str(p) for p in tracked])
    except ValidationError as e:
        logger.error("Invalid tracking config in %s: %s", path, e)
        return TrackingConfig()


def save_tracking_config(config: TrackingConfig, path: Path) -> None:
    """Write the tracking list back to disk."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(
            {"tracked_files": list(config.tracked_files)},
            f,
            sort_keys=False,
            allow_unicode=True,
        )
    logger.debug("Saved %d tracked files to %s", len(config.tracked_files), path)
