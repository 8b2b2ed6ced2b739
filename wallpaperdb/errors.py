"""Error types raised by the persistence layer.

SQLite failures are re-raised as one of these with the original
``sqlite3`` exception kept on ``__cause__``.
"""
from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from typing import Iterator


class WallpaperDBError(Exception):
    """Base class for all wallpaperdb errors."""

    def __init__(self, message: str, operation: str | None = None) -> None:
        super().__init__(message)
        self.operation = operation


class NotFoundError(WallpaperDBError):
    """A database file that must already exist is missing."""


class ConstraintViolationError(WallpaperDBError):
    """A statement violated a table constraint (NOT NULL, PRIMARY KEY...)."""


class StorageIOError(WallpaperDBError):
    """The engine could not read or write the database file."""


class SchemaVersionError(WallpaperDBError):
    """The stored schema version cannot be migrated to the current one."""


@contextmanager
def translate_errors(operation: str) -> Iterator[None]:
    """Re-raise ``sqlite3`` errors from the block as wallpaperdb errors."""
    try:
        yield
    except sqlite3.IntegrityError as exc:
        raise ConstraintViolationError(f"{operation}: {exc}", operation) from exc
    except sqlite3.OperationalError as exc:
        raise StorageIOError(f"{operation}: {exc}", operation) from exc
    except sqlite3.Error as exc:
        raise WallpaperDBError(f"{operation}: {exc}", operation) from exc
