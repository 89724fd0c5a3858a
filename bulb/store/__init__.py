"""Bulb store: on-disk persistence for project spaces."""
from .config import BulbConfig, EventCallback, fire_event
from .errors import (
    BulbStoreError,
    DocumentCorruptError,
    DocumentNotFoundError,
    DocumentWriteError,
    PathEscapeError,
)
from .models import (
    DocumentType,
    ProjectDocument,
    ProjectSummary,
    SaveResult,
    sanitize_title,
)
from .documents import DocumentStore
from .catalog import CatalogScanner
from .reminders import ReminderStore

__all__ = [
    # Config
    "BulbConfig",
    "EventCallback",
    "fire_event",
    "load_yaml_config",
    # Errors
    "BulbStoreError",
    "DocumentCorruptError",
    "DocumentNotFoundError",
    "DocumentWriteError",
    "PathEscapeError",
    # Models
    "DocumentType",
    "ProjectDocument",
    "ProjectSummary",
    "SaveResult",
    "sanitize_title",
    # Storage
    "CatalogScanner",
    "DocumentStore",
    "ReminderStore",
]


def __getattr__(name: str):
    if name == "load_yaml_config":
        from .yaml_config import load_yaml_config
        return load_yaml_config
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
