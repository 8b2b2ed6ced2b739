"""Value objects for the three image tables and their row mapping.

Column names are camelCase because the mobile app created the tables that
way; existing ``images.db`` files are read without renaming anything.
"""
from __future__ import annotations

import dataclasses
import enum
import sqlite3
from datetime import datetime
from typing import Any, Mapping


def _ts(value: datetime) -> str:
    return value.isoformat()


def _parse_ts(raw: str) -> datetime:
    return datetime.fromisoformat(raw)


@dataclasses.dataclass
class ImageModel:
    """A wallpaper as shown in the recents and favorites lists."""

    id: str
    name: str
    image_url: str
    thumbnail_url: str
    category_id: str
    uploaded_time: datetime
    view_time: datetime | None = None

    def to_row(self) -> dict[str, Any]:
        row: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "imageUrl": self.image_url,
            "thumbnailUrl": self.thumbnail_url,
            "categoryId": self.category_id,
            "uploadedTime": _ts(self.uploaded_time),
        }
        if self.view_time is not None:
            row["viewTime"] = _ts(self.view_time)
        return row

    @classmethod
    def from_row(cls, row: sqlite3.Row | Mapping[str, Any]) -> "ImageModel":
        # favorites rows have createdAt instead of viewTime
        keys = row.keys()
        view_time = row["viewTime"] if "viewTime" in keys else None
        return cls(
            id=row["id"],
            name=row["name"],
            image_url=row["imageUrl"],
            thumbnail_url=row["thumbnailUrl"],
            category_id=row["categoryId"],
            uploaded_time=_parse_ts(row["uploadedTime"]),
            view_time=_parse_ts(view_time) if view_time else None,
        )


@dataclasses.dataclass
class DownloadedImage:
    """A wallpaper saved to the device."""

    id: str
    name: str
    image_url: str
    created_at: datetime

    def to_row(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "imageUrl": self.image_url,
            "createdAt": _ts(self.created_at),
        }

    @classmethod
    def from_row(cls, row: sqlite3.Row | Mapping[str, Any]) -> "DownloadedImage":
        return cls(
            id=row["id"],
            name=row["name"],
            image_url=row["imageUrl"],
            created_at=_parse_ts(row["createdAt"]),
        )


class ImageOrder(str, enum.Enum):
    """Fixed ORDER BY fragments accepted by the list queries.

    Only these fragments ever reach SQL; ``julianday`` keeps sub-second
    precision, which ``datetime()`` would truncate.
    """

    CREATED_AT_DESC = "julianday(createdAt) DESC"
    NAME_ASC = "name ASC"

    @classmethod
    def coerce(cls, value: "ImageOrder | str") -> "ImageOrder":
        """Accept a member, its name (``"NAME_ASC"``) or its SQL value."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            if value in cls.__members__:
                return cls[value]
            for member in cls:
                if member.value == value:
                    return member
        raise ValueError(
            f"Unsupported order: {value!r}. "
            f"Choose from: {', '.join(cls.__members__)}"
        )
