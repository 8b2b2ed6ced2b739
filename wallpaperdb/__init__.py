"""wallpaperdb — local persistence for recently viewed, favorite and downloaded wallpapers."""
from __future__ import annotations

__version__ = "0.1.0"

from wallpaperdb.db import Database, ImageRepository, QueryStream
from wallpaperdb.errors import (
    ConstraintViolationError,
    NotFoundError,
    SchemaVersionError,
    StorageIOError,
    WallpaperDBError,
)
from wallpaperdb.models import DownloadedImage, ImageModel, ImageOrder

__all__ = [
    "ConstraintViolationError",
    "Database",
    "DownloadedImage",
    "ImageModel",
    "ImageOrder",
    "ImageRepository",
    "NotFoundError",
    "QueryStream",
    "SchemaVersionError",
    "StorageIOError",
    "WallpaperDBError",
]
