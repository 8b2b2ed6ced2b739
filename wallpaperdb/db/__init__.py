"""Database layer for wallpaperdb — SQLite-backed persistence and live queries."""
from __future__ import annotations

from wallpaperdb.db.connection import Database, get_data_dir, get_db_path
from wallpaperdb.db.repository import ImageRepository
from wallpaperdb.db.watch import QueryStream

__all__ = ["Database", "ImageRepository", "QueryStream", "get_data_dir", "get_db_path"]
