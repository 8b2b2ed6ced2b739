"""Maintenance CLI for the wallpaper image database, built on Typer."""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, TypeVar

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from wallpaperdb.db.connection import Database, get_db_path
from wallpaperdb.db.repository import ImageRepository
from wallpaperdb.db.schema import ALL_TABLES, SCHEMA_VERSION
from wallpaperdb.errors import WallpaperDBError
from wallpaperdb.models import ImageOrder

app = typer.Typer(
    name="wallpaperdb",
    help="Inspect and maintain the wallpaper app's local image database.",
    add_completion=False,
    rich_markup_mode="rich",
)
console = Console()

T = TypeVar("T")

ORDER_CHOICES = {
    "created": ImageOrder.CREATED_AT_DESC,
    "name": ImageOrder.NAME_ASC,
}

_state: dict[str, Any] = {"db_path": None}


@app.callback()
def main(
    db: Optional[Path] = typer.Option(
        None, "--db", help="Database file (default: $WALLPAPERDB_DB_PATH or the app data dir)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    from dotenv import load_dotenv
    load_dotenv()

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )
    _state["db_path"] = db or get_db_path()


def _run(fn: Callable[[ImageRepository], Awaitable[T]], create: bool = False) -> T:
    """Open the database, run *fn* against a repository, always close."""

    async def runner() -> T:
        async with Database(_state["db_path"], create=create) as database:
            return await fn(ImageRepository(database))

    try:
        return asyncio.run(runner())
    except WallpaperDBError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1)


def _parse_order(order: str) -> ImageOrder:
    if order not in ORDER_CHOICES:
        console.print(
            f"[red]Unknown order '{order}'. Choose from: {', '.join(ORDER_CHOICES)}[/red]"
        )
        raise typer.Exit(1)
    return ORDER_CHOICES[order]


def _fmt(value: Any) -> str:
    if value is None:
        return "—"
    if hasattr(value, "isoformat"):
        return value.isoformat(sep=" ", timespec="seconds")
    return str(value)


@app.command()
def info() -> None:
    """Show the database path, schema version and row counts."""

    async def collect(repo: ImageRepository) -> tuple[int, dict[str, int]]:
        version = await repo.db.schema_version()
        counts = {t: await repo.count_images(t) for t in ALL_TABLES}
        return version, counts

    version, counts = _run(collect)

    table = Table(title="Image Database", show_header=True, header_style="bold cyan")
    table.add_column("Field", style="bold", width=16)
    table.add_column("Value")
    table.add_row("Path", str(_state["db_path"]))
    table.add_row("Schema version", f"{version} (current: {SCHEMA_VERSION})")
    for name, count in counts.items():
        table.add_row(name, str(count))
    console.print(table)


@app.command()
def recents(
    limit: Optional[int] = typer.Option(None, "--limit", "-n", min=0, help="Maximum rows"),
) -> None:
    """List recently viewed images, newest first."""
    images = _run(lambda repo: repo.watch_recent_images(limit=limit).first())

    table = Table(title="Recent Images", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="bold")
    table.add_column("Name")
    table.add_column("Category")
    table.add_column("Viewed")
    for img in images:
        table.add_row(img.id, img.name, img.category_id, _fmt(img.view_time))
    console.print(table)


@app.command()
def favorites(
    order: str = typer.Option("created", "--order", help=f"Sort: {', '.join(ORDER_CHOICES)}"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", min=0, help="Maximum rows"),
) -> None:
    """List favorite images."""
    order_by = _parse_order(order)
    images = _run(
        lambda repo: repo.watch_favorite_images(order_by=order_by, limit=limit).first()
    )

    table = Table(title="Favorite Images", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="bold")
    table.add_column("Name")
    table.add_column("Category")
    table.add_column("Uploaded")
    for img in images:
        table.add_row(img.id, img.name, img.category_id, _fmt(img.uploaded_time))
    console.print(table)


@app.command()
def downloads(
    order: str = typer.Option("created", "--order", help=f"Sort: {', '.join(ORDER_CHOICES)}"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", min=0, help="Maximum rows"),
) -> None:
    """List downloaded images."""
    order_by = _parse_order(order)
    images = _run(lambda repo: repo.get_downloaded_images(order_by=order_by, limit=limit))

    table = Table(title="Downloaded Images", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="bold")
    table.add_column("Name")
    table.add_column("Image URL")
    table.add_column("Downloaded")
    for img in images:
        table.add_row(img.id, img.name, img.image_url, _fmt(img.created_at))
    console.print(table)


@app.command(name="clear-recents")
def clear_recents() -> None:
    """Delete every recently viewed image."""
    removed = _run(lambda repo: repo.delete_all_recent_images())
    console.print(f"[green]Removed {removed} recent image(s).[/green]")


@app.command()
def forget(
    image_id: str = typer.Argument(..., help="Image id to delete"),
    table_name: str = typer.Option(
        "recents", "--table", help=f"Table: {', '.join(ALL_TABLES)}"
    ),
) -> None:
    """Delete one image from a table.

    Example::

        wallpaperdb forget abc123 --table favorites
    """
    if table_name not in ALL_TABLES:
        console.print(
            f"[red]Unknown table '{table_name}'. Choose from: {', '.join(ALL_TABLES)}[/red]"
        )
        raise typer.Exit(1)

    async def delete(repo: ImageRepository) -> bool:
        if table_name == "recents":
            return await repo.delete_recent_image_by_id(image_id) > 0
        if table_name == "favorites":
            return await repo.delete_favorite_image_by_id(image_id) > 0
        return await repo.delete_downloaded_image_by_id(image_id)

    if _run(delete):
        console.print(f"[green]Removed[/green] {image_id} from {table_name}.")
    else:
        console.print(f"[yellow]No image '{image_id}' in {table_name}.[/yellow]")


@app.command()
def migrate() -> None:
    """Create the database or upgrade it to the current schema version."""
    version = _run(lambda repo: repo.db.schema_version(), create=True)
    console.print(f"[green]Schema version {version}[/green] at {_state['db_path']}")


if __name__ == "__main__":
    app()
