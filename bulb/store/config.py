"""Configuration loaded from environment variables.

All settings have sensible defaults. Override via BULB_* env vars, or
with a YAML file (see yaml_config).
"""
from __future__ import annotations

import logging
import os
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


# Optional async callback for save/selection status events.
# Signature: async def callback(event: dict[str, Any]) -> None
EventCallback = Callable[[dict[str, Any]], Awaitable[None]]


async def fire_event(
    callback: EventCallback | None,
    event: dict[str, Any],
) -> None:
    """Fire an event callback if set; callback errors are logged, not raised."""
    if callback is None:
        return
    try:
        await callback(event)
    except Exception:
        logger.debug("Event callback failed for %s", event.get("event"), exc_info=True)


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class BulbConfig:
    """Storage, autosave and server configuration."""

    # Storage layout
    data_dir: str = str(Path.home() / ".bulb")
    projects_dirname: str = "ProjectSpaces"
    document_suffix: str = ".canvas.json"
    reminders_filename: str = "reminders.json"

    # Autosave timing. The stream interval rate-limits propagation of
    # canvas changes; the idle period is the quiet time before a
    # durable commit.
    propagate_interval_seconds: float = 0.5
    idle_save_seconds: float = 10.0
    # When set, every propagated change is also written to disk.
    stream_saves: bool = True

    # Title fallbacks
    new_project_title: str = "New Project"
    untitled_project_title: str = "Untitled Project"

    # Logging
    log_level: str = "INFO"

    # Boundary server
    host: str = "127.0.0.1"
    port: int = 0

    @property
    def projects_dir(self) -> Path:
        return Path(self.data_dir).expanduser() / self.projects_dirname

    @property
    def reminders_path(self) -> Path:
        return Path(self.data_dir).expanduser() / self.reminders_filename

    @property
    def log_dir(self) -> Path:
        return Path(self.data_dir).expanduser() / "logs"

    @classmethod
    def from_env(cls) -> BulbConfig:
        """Load configuration from BULB_* environment variables."""
        bulb_vars = {
            k: v for k, v in os.environ.items() if k.startswith("BULB_")
        }
        if bulb_vars:
            logger.info(
                "BulbConfig.from_env: BULB_* env overrides: %s",
                ", ".join(f"{k}={v}" for k, v in sorted(bulb_vars.items())),
            )
        else:
            logger.debug("BulbConfig.from_env: no BULB_* env vars set, using defaults")

        config = cls(
            data_dir=os.getenv("BULB_DATA_DIR", cls.data_dir),
            projects_dirname=os.getenv(
                "BULB_PROJECTS_DIRNAME", cls.projects_dirname
            ),
            propagate_interval_seconds=float(os.getenv(
                "BULB_PROPAGATE_INTERVAL", str(cls.propagate_interval_seconds)
            )),
            idle_save_seconds=float(os.getenv(
                "BULB_IDLE_SAVE_SECONDS", str(cls.idle_save_seconds)
            )),
            stream_saves=_env_flag("BULB_STREAM_SAVES", cls.stream_saves),
            log_level=os.getenv("BULB_LOG_LEVEL", cls.log_level),
            host=os.getenv("BULB_HOST", cls.host),
            port=int(os.getenv("BULB_PORT", str(cls.port))),
        )
        logger.debug(
            "BulbConfig.from_env: data_dir=%s propagate=%.2fs idle=%.2fs stream_saves=%s",
            config.data_dir,
            config.propagate_interval_seconds,
            config.idle_save_seconds,
            config.stream_saves,
        )
        return config
