"""YAML configuration loader.

Loads a single YAML file layered on top of the BULB_* environment
configuration. Every section is optional.

Example YAML:
    storage:
      data_dir: ~/Documents/Bulb
      projects_dirname: ProjectSpaces

    autosave:
      propagate_interval_seconds: 0.5
      idle_save_seconds: 10
      stream_saves: true

    titles:
      new_project: New Project
      untitled_project: Untitled Project

    server:
      host: 127.0.0.1
      port: 8765

    logging:
      level: DEBUG
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from .config import BulbConfig

logger = logging.getLogger(__name__)

# section -> {yaml key: BulbConfig field}
_SECTION_FIELDS: dict[str, dict[str, str]] = {
    "storage": {
        "data_dir": "data_dir",
        "projects_dirname": "projects_dirname",
    },
    "autosave": {
        "propagate_interval_seconds": "propagate_interval_seconds",
        "idle_save_seconds": "idle_save_seconds",
        "stream_saves": "stream_saves",
    },
    "titles": {
        "new_project": "new_project_title",
        "untitled_project": "untitled_project_title",
    },
    "server": {
        "host": "host",
        "port": "port",
    },
    "logging": {
        "level": "log_level",
    },
}

_FLOAT_FIELDS = {"propagate_interval_seconds", "idle_save_seconds"}
_INT_FIELDS = {"port"}
_BOOL_FIELDS = {"stream_saves"}


def _coerce(field_name: str, value: Any) -> Any:
    if field_name in _FLOAT_FIELDS:
        return float(value)
    if field_name in _INT_FIELDS:
        return int(value)
    if field_name in _BOOL_FIELDS:
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "on"}
        return bool(value)
    return str(value)


def apply_yaml_overrides(config: BulbConfig, raw: dict[str, Any]) -> BulbConfig:
    """Apply parsed YAML sections onto an existing config in place."""
    for section, values in raw.items():
        fields = _SECTION_FIELDS.get(section)
        if fields is None:
            logger.warning("Ignoring unknown config section %r", section)
            continue
        if values is None:
            continue
        if not isinstance(values, dict):
            raise ValueError(f"Config section {section!r} must be a mapping")
        for key, value in values.items():
            field_name = fields.get(key)
            if field_name is None:
                logger.warning("Ignoring unknown config key %s.%s", section, key)
                continue
            setattr(config, field_name, _coerce(field_name, value))
    return config


def load_yaml_config(path: str | Path, base: BulbConfig | None = None) -> BulbConfig:
    """Load a YAML config file and layer it over *base* (or env defaults)."""
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.error("load_yaml_config: config file not found at %s", path.absolute())
        raise
    except yaml.YAMLError as exc:
        logger.error("load_yaml_config: YAML parse error in %s: %s", path, exc)
        raise

    if not isinstance(raw, dict):
        raise ValueError(f"Config file {path} must contain a mapping at top level")

    logger.info(
        "Parsed YAML config %s, sections: %s",
        path.name, ", ".join(sorted(raw)) if raw else "(empty)",
    )
    config = base if base is not None else BulbConfig.from_env()
    return apply_yaml_overrides(config, raw)
