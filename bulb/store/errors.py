"""Exception hierarchy for the project-space store.

The boundary operations convert these into result objects or log lines;
they never escape to the presentation layer as raw exceptions.
"""
from __future__ import annotations


class BulbStoreError(Exception):
    """Base exception for all storage errors."""


class PathEscapeError(BulbStoreError):
    """A relative document path resolved outside the storage root."""
    def __init__(self, path: str, root: str):
        self.path = path
        self.root = root
        super().__init__(f"Path {path!r} escapes storage root {root}")


class DocumentNotFoundError(BulbStoreError):
    """The document file does not exist."""
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Project document not found: {path}")


class DocumentCorruptError(BulbStoreError):
    """The document file exists but its envelope cannot be parsed."""
    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Project document {path} is unreadable: {reason}")


class DocumentWriteError(BulbStoreError):
    """Writing the document to disk failed."""
    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to write project document {path}: {reason}")
