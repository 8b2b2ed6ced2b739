"""Tests for schema creation and the v1 -> v2 migration."""
from __future__ import annotations

import asyncio
import sqlite3

import pytest

from wallpaperdb.db.connection import Database
from wallpaperdb.db.repository import ImageRepository
from wallpaperdb.db.schema import SCHEMA_VERSION, ensure_schema, get_schema_version

from conftest import make_download

_V1_DDL = """
    CREATE TABLE recents(
        id TEXT PRIMARY KEY UNIQUE NOT NULL,
        name TEXT NOT NULL,
        imageUrl TEXT NOT NULL,
        thumbnailUrl TEXT NOT NULL,
        categoryId TEXT NOT NULL,
        uploadedTime TEXT NOT NULL,
        viewTime TEXT NOT NULL
    );
    CREATE TABLE favorites(
        id TEXT PRIMARY KEY UNIQUE NOT NULL,
        name TEXT NOT NULL,
        imageUrl TEXT NOT NULL,
        thumbnailUrl TEXT NOT NULL,
        categoryId TEXT NOT NULL,
        uploadedTime TEXT NOT NULL,
        createdAt TEXT NOT NULL
    );
    INSERT INTO recents VALUES (
        'r1', 'Lake', 'https://x/r1.jpg', 'https://x/r1_t.jpg', 'nature',
        '2019-05-01T10:00:00.000', '2019-06-01T10:00:00.000'
    );
    INSERT INTO favorites VALUES (
        'f1', 'Forest', 'https://x/f1.jpg', 'https://x/f1_t.jpg', 'nature',
        '2019-05-01T10:00:00.000', '2019-06-02T10:00:00.000'
    );
    PRAGMA user_version = 1;
"""


def _tables(conn: sqlite3.Connection) -> set[str]:
    rows = conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
    return {r[0] for r in rows}


@pytest.fixture
def v1_db_path(tmp_path):
    path = tmp_path / "images.db"
    conn = sqlite3.connect(str(path))
    conn.executescript(_V1_DDL)
    conn.close()
    return path


class TestEnsureSchema:
    def test_fresh_database_gets_all_tables(self):
        conn = sqlite3.connect(":memory:", isolation_level=None)
        ensure_schema(conn)
        assert _tables(conn) == {"recents", "favorites", "downloads"}
        assert get_schema_version(conn) == SCHEMA_VERSION == 2

    def test_idempotent(self):
        conn = sqlite3.connect(":memory:", isolation_level=None)
        ensure_schema(conn)
        ensure_schema(conn)
        assert get_schema_version(conn) == SCHEMA_VERSION

    def test_newer_version_rejected(self):
        from wallpaperdb.errors import SchemaVersionError

        conn = sqlite3.connect(":memory:", isolation_level=None)
        conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION + 1}")
        with pytest.raises(SchemaVersionError):
            ensure_schema(conn)


class TestUpgradeFromV1:
    def test_adds_downloads_and_keeps_data(self, v1_db_path, caplog):
        async def scenario():
            async with Database(v1_db_path) as database:
                repo = ImageRepository(database)
                version = await database.schema_version()
                recent = await repo.get_recent_image_by_id("r1")
                favorite = await repo.is_favorite_image("f1")
                stored = await repo.insert_downloaded_image(make_download("d1"))
                downloads = await repo.get_downloaded_images()
                return version, recent, favorite, stored, downloads

        with caplog.at_level("INFO", logger="wallpaperdb.db.schema"):
            version, recent, favorite, stored, downloads = asyncio.run(scenario())

        assert version == 2
        assert recent is not None and recent.name == "Lake"
        assert favorite is True
        assert stored is True
        assert [d.id for d in downloads] == ["d1"]
        assert "Upgrading schema from 1 to 2" in caplog.text

        conn = sqlite3.connect(str(v1_db_path))
        try:
            assert "downloads" in _tables(conn)
        finally:
            conn.close()

    def test_mobile_timestamps_are_readable(self, v1_db_path):
        async def scenario():
            async with Database(v1_db_path) as database:
                return await ImageRepository(database).watch_recent_images().first()

        (image,) = asyncio.run(scenario())
        assert image.view_time is not None
        assert image.view_time.year == 2019
