"""Repository — CRUD operations for the recents, favorites and downloads tables.

Every method is one statement against the shared ``Database``; writes that
change rows wake the live queries watching the same table.
"""
from __future__ import annotations

import dataclasses
import sqlite3
from typing import Any, Callable, TypeVar

from wallpaperdb.db.connection import Database
from wallpaperdb.db.schema import (
    ALL_TABLES,
    TABLE_DOWNLOADS,
    TABLE_FAVORITES,
    TABLE_RECENTS,
)
from wallpaperdb.db.watch import QueryStream
from wallpaperdb.models import DownloadedImage, ImageModel, ImageOrder

T = TypeVar("T")

_RECENTS_ORDER = "julianday(viewTime) DESC"


def _upsert_sql(table: str, row: dict[str, Any]) -> tuple[str, list[Any]]:
    cols = list(row.keys())
    placeholders = ", ".join(["?"] * len(cols))
    col_str = ", ".join(cols)
    return (
        f"INSERT OR REPLACE INTO {table} ({col_str}) VALUES ({placeholders})",
        list(row.values()),
    )


def _list_query(
    table: str,
    order_by: str,
    limit: int | None,
    mapper: Callable[[sqlite3.Row], T],
) -> Callable[[sqlite3.Connection], list[T]]:
    """Build a worker-side query returning all mapped rows of *table*."""
    if limit is not None and limit < 0:
        raise ValueError(f"limit must be >= 0, got {limit}")
    sql = f"SELECT * FROM {table} ORDER BY {order_by}"
    params: list[Any] = []
    if limit is not None:
        sql += " LIMIT ?"
        params.append(limit)

    def query(conn: sqlite3.Connection) -> list[T]:
        return [mapper(r) for r in conn.execute(sql, params).fetchall()]

    return query


class ImageRepository:
    """Data access layer for the wallpaper image database."""

    def __init__(self, db: Database) -> None:
        self.db = db

    async def _upsert(self, table: str, row: dict[str, Any], operation: str) -> sqlite3.Cursor:
        sql, params = _upsert_sql(table, row)
        return await self.db.execute_write(table, sql, params, operation=operation)

    async def count_images(self, table: str) -> int:
        if table not in ALL_TABLES:
            raise ValueError(f"Unknown table: {table}")

        def count(conn: sqlite3.Connection) -> int:
            return conn.execute(f"SELECT COUNT(*) AS cnt FROM {table}").fetchone()["cnt"]

        return await self.db.run(count, operation="count_images")

    # ── Recent images ──────────────────────────────────────────────────────

    async def insert_recent_image(self, image: ImageModel) -> int:
        """Record *image* as viewed now.  Returns the row id.

        The view time is stamped on a copy; *image* itself is unchanged.
        """
        viewed = dataclasses.replace(image, view_time=self.db.now())
        cur = await self._upsert(TABLE_RECENTS, viewed.to_row(), "insert_recent_image")
        return cur.lastrowid  # type: ignore[return-value]

    async def update_recent_image(self, image: ImageModel) -> int:
        """Overwrite the stored columns of *image*.  Returns affected rows.

        ``view_time=None`` keeps the stored view time.
        """
        fields = image.to_row()
        fields.pop("id")
        sets = ", ".join(f"{k} = ?" for k in fields)
        vals = list(fields.values()) + [image.id]
        cur = await self.db.execute_write(
            TABLE_RECENTS,
            f"UPDATE OR REPLACE {TABLE_RECENTS} SET {sets} WHERE id = ?",
            vals,
            operation="update_recent_image",
        )
        return cur.rowcount

    async def delete_recent_image_by_id(self, image_id: str) -> int:
        cur = await self.db.execute_write(
            TABLE_RECENTS,
            f"DELETE FROM {TABLE_RECENTS} WHERE id = ?",
            [image_id],
            operation="delete_recent_image_by_id",
        )
        return cur.rowcount

    async def delete_all_recent_images(self) -> int:
        cur = await self.db.execute_write(
            TABLE_RECENTS,
            f"DELETE FROM {TABLE_RECENTS} WHERE 1",
            operation="delete_all_recent_images",
        )
        return cur.rowcount

    async def get_recent_image_by_id(self, image_id: str) -> ImageModel | None:
        def fetch(conn: sqlite3.Connection) -> ImageModel | None:
            row = conn.execute(
                f"SELECT * FROM {TABLE_RECENTS} WHERE id = ? LIMIT 1", [image_id]
            ).fetchone()
            return ImageModel.from_row(row) if row else None

        return await self.db.run(fetch, operation="get_recent_image_by_id")

    def watch_recent_images(self, limit: int | None = None) -> QueryStream[list[ImageModel]]:
        """Live list of recent images, most recently viewed first."""
        query = _list_query(TABLE_RECENTS, _RECENTS_ORDER, limit, ImageModel.from_row)
        return QueryStream(self.db, TABLE_RECENTS, query, "watch_recent_images")

    # ── Favorite images ────────────────────────────────────────────────────

    def watch_favorite_images(
        self,
        order_by: ImageOrder | str = ImageOrder.CREATED_AT_DESC,
        limit: int | None = None,
    ) -> QueryStream[list[ImageModel]]:
        """Live list of favorites, newest favorite first unless *order_by* says otherwise."""
        order = ImageOrder.coerce(order_by)
        query = _list_query(TABLE_FAVORITES, order.value, limit, ImageModel.from_row)
        return QueryStream(self.db, TABLE_FAVORITES, query, "watch_favorite_images")

    async def insert_favorite_image(self, image: ImageModel) -> int:
        row = dataclasses.replace(image, view_time=None).to_row()
        row["createdAt"] = self.db.now().isoformat()
        cur = await self._upsert(TABLE_FAVORITES, row, "insert_favorite_image")
        return cur.lastrowid  # type: ignore[return-value]

    async def update_favorite_image(self, image: ImageModel) -> int:
        cur = await self.db.execute_write(
            TABLE_FAVORITES,
            f"""UPDATE {TABLE_FAVORITES}
                SET name = ?, imageUrl = ?, thumbnailUrl = ?, categoryId = ?, uploadedTime = ?
                WHERE id = ?""",
            [
                image.name,
                image.image_url,
                image.thumbnail_url,
                image.category_id,
                image.uploaded_time.isoformat(),
                image.id,
            ],
            operation="update_favorite_image",
        )
        return cur.rowcount

    async def delete_favorite_image_by_id(self, image_id: str) -> int:
        cur = await self.db.execute_write(
            TABLE_FAVORITES,
            f"DELETE FROM {TABLE_FAVORITES} WHERE id = ?",
            [image_id],
            operation="delete_favorite_image_by_id",
        )
        return cur.rowcount

    async def is_favorite_image(self, image_id: str) -> bool:
        def exists(conn: sqlite3.Connection) -> bool:
            row = conn.execute(
                f"SELECT EXISTS(SELECT 1 FROM {TABLE_FAVORITES} WHERE id = ? LIMIT 1)",
                [image_id],
            ).fetchone()
            return row is not None and row[0] == 1

        return await self.db.run(exists, operation="is_favorite_image")

    # ── Downloaded images ──────────────────────────────────────────────────

    async def get_downloaded_images(
        self,
        order_by: ImageOrder | str = ImageOrder.CREATED_AT_DESC,
        limit: int | None = None,
    ) -> list[DownloadedImage]:
        order = ImageOrder.coerce(order_by)
        query = _list_query(TABLE_DOWNLOADS, order.value, limit, DownloadedImage.from_row)
        return await self.db.run(query, operation="get_downloaded_images")

    async def insert_downloaded_image(self, image: DownloadedImage) -> bool:
        """Upsert *image*.  Returns False if no row was written."""
        cur = await self._upsert(TABLE_DOWNLOADS, image.to_row(), "insert_downloaded_image")
        return cur.rowcount > 0

    async def delete_downloaded_image_by_id(self, image_id: str) -> bool:
        """Returns True if a row was removed."""
        cur = await self.db.execute_write(
            TABLE_DOWNLOADS,
            f"DELETE FROM {TABLE_DOWNLOADS} WHERE id = ?",
            [image_id],
            operation="delete_downloaded_image_by_id",
        )
        return cur.rowcount > 0
