"""Shared fixtures for wallpaperdb tests."""
from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from wallpaperdb.db.connection import Database
from wallpaperdb.db.repository import ImageRepository
from wallpaperdb.models import DownloadedImage, ImageModel


class StepClock:
    """Deterministic clock: every call is one second after the previous one."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


def make_image(image_id: str = "img-1", name: str | None = None, **overrides) -> ImageModel:
    fields = dict(
        id=image_id,
        name=name or f"Wallpaper {image_id}",
        image_url=f"https://cdn.example.com/{image_id}.jpg",
        thumbnail_url=f"https://cdn.example.com/{image_id}_thumb.jpg",
        category_id="nature",
        uploaded_time=datetime(2023, 6, 1, 8, 30, tzinfo=timezone.utc),
    )
    fields.update(overrides)
    return ImageModel(**fields)


def make_download(image_id: str = "img-1", created_at: datetime | None = None) -> DownloadedImage:
    return DownloadedImage(
        id=image_id,
        name=f"Wallpaper {image_id}",
        image_url=f"https://cdn.example.com/{image_id}.jpg",
        created_at=created_at or datetime(2024, 2, 1, 9, 0, tzinfo=timezone.utc),
    )


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "images.db"


@pytest.fixture
def db(db_path):
    database = Database(db_path, clock=StepClock())
    yield database
    asyncio.run(database.close())


@pytest.fixture
def repo(db):
    return ImageRepository(db)
