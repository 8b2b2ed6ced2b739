"""Database schema — CREATE TABLE statements and migration runner.

The schema version lives in ``PRAGMA user_version``, the slot the mobile
app's SQLite wrapper wrote, so files it created upgrade in place.  Each
migration is a function ``_migrate_vN(conn)`` that runs the DDL for version
*N*.  ``ensure_schema`` applies all pending migrations in order, each in its
own transaction.
"""
from __future__ import annotations

import logging
import sqlite3

from wallpaperdb.errors import SchemaVersionError

log = logging.getLogger(__name__)

# ── Current schema version ────────────────────────────────────────────────────
SCHEMA_VERSION = 2

TABLE_RECENTS = "recents"
TABLE_FAVORITES = "favorites"
TABLE_DOWNLOADS = "downloads"

ALL_TABLES = (TABLE_RECENTS, TABLE_FAVORITES, TABLE_DOWNLOADS)


def get_schema_version(conn: sqlite3.Connection) -> int:
    return conn.execute("PRAGMA user_version").fetchone()[0]


def ensure_schema(conn: sqlite3.Connection) -> None:
    """Create or upgrade the database schema to the latest version."""
    current = get_schema_version(conn)
    if current > SCHEMA_VERSION:
        raise SchemaVersionError(
            f"Database schema version {current} is newer than supported "
            f"version {SCHEMA_VERSION}",
            "ensure_schema",
        )
    if current == SCHEMA_VERSION:
        return

    if current == 0:
        log.info("Creating schema version %d", SCHEMA_VERSION)
    else:
        log.info("Upgrading schema from %d to %d", current, SCHEMA_VERSION)

    migrations = {
        1: _migrate_v1,
        2: _migrate_v2,
    }

    for v in range(current + 1, SCHEMA_VERSION + 1):
        fn = migrations.get(v)
        if fn is None:
            raise SchemaVersionError(
                f"Missing migration function for schema version {v}", "ensure_schema"
            )
        conn.execute("BEGIN IMMEDIATE")
        try:
            fn(conn)
            # PRAGMA does not accept bound parameters
            conn.execute(f"PRAGMA user_version = {int(v)}")
            conn.execute("COMMIT")
        except Exception:
            conn.execute("ROLLBACK")
            raise
        log.debug("Applied migration v%d", v)


# ── Migration v1: recents + favorites ────────────────────────────────────────

def _migrate_v1(conn: sqlite3.Connection) -> None:
    """Initial schema — recently viewed and favorited images."""
    conn.execute(f"""
        CREATE TABLE IF NOT EXISTS {TABLE_RECENTS} (
            id            TEXT PRIMARY KEY UNIQUE NOT NULL,
            name          TEXT NOT NULL,
            imageUrl      TEXT NOT NULL,
            thumbnailUrl  TEXT NOT NULL,
            categoryId    TEXT NOT NULL,
            uploadedTime  TEXT NOT NULL,
            viewTime      TEXT NOT NULL
        )
    """)
    conn.execute(f"""
        CREATE TABLE IF NOT EXISTS {TABLE_FAVORITES} (
            id            TEXT PRIMARY KEY UNIQUE NOT NULL,
            name          TEXT NOT NULL,
            imageUrl      TEXT NOT NULL,
            thumbnailUrl  TEXT NOT NULL,
            categoryId    TEXT NOT NULL,
            uploadedTime  TEXT NOT NULL,
            createdAt     TEXT NOT NULL
        )
    """)


# ── Migration v2: downloads ──────────────────────────────────────────────────

def _migrate_v2(conn: sqlite3.Connection) -> None:
    """Add the ``downloads`` table for images saved to the device."""
    conn.execute(f"""
        CREATE TABLE IF NOT EXISTS {TABLE_DOWNLOADS} (
            id         TEXT PRIMARY KEY UNIQUE NOT NULL,
            name       TEXT NOT NULL,
            imageUrl   TEXT NOT NULL,
            createdAt  TEXT NOT NULL
        )
    """)
