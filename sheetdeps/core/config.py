"""
sheetdeps/core/config.py

Loads sheetdeps/config/rules.yaml (or an explicit file).
A missing or unreadable config is not an error: callers fall back to defaults.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[1] / "config" / "rules.yaml"


def load_config(path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    cfg_path = Path(path) if path else DEFAULT_CONFIG_PATH
    try:
        raw = yaml.safe_load(cfg_path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Could not load config %s (%s); using defaults", cfg_path, e)
        return {}
    if not isinstance(raw, dict):
        logger.warning("Config %s is not a mapping; using defaults", cfg_path)
        return {}
    return raw


def cfg_get(cfg: Dict[str, Any], path: str, default: Any = None) -> Any:
    """Safely fetch a dotted-path value from nested dict configs."""
    if not path:
        return default
    cur: Any = cfg
    for key in str(path).split("."):
        if not isinstance(cur, dict) or key not in cur:
            return default
        cur = cur.get(key)
    return cur
