"""Database connection management — SQLite with WAL mode.

A ``Database`` is an explicitly constructed handle owned by the caller.  It
opens its connection lazily on first use and runs every statement on one
dedicated worker thread, so coroutines awaiting it never block the event
loop and the connection is never used from two threads at once.
"""
from __future__ import annotations

import asyncio
import logging
import os
import sqlite3
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Sequence, TypeVar

from wallpaperdb.db.schema import ensure_schema, get_schema_version
from wallpaperdb.db.watch import TableWatcher
from wallpaperdb.errors import NotFoundError, translate_errors

log = logging.getLogger(__name__)

DB_NAME = "images.db"
MEMORY = ":memory:"

_DEFAULT_DATA_DIR = Path.home() / ".local" / "share" / "wallpaper"

T = TypeVar("T")


def get_data_dir() -> Path:
    """Return the application's private data directory from env or default."""
    raw = os.getenv("WALLPAPERDB_DATA_DIR", "")
    if raw:
        return Path(raw).expanduser()
    return _DEFAULT_DATA_DIR


def get_db_path() -> Path:
    """Return the database file path from env or ``<data dir>/images.db``."""
    raw = os.getenv("WALLPAPERDB_DB_PATH", "")
    if raw:
        return Path(raw).expanduser()
    return get_data_dir() / DB_NAME


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _execute(conn: sqlite3.Connection, sql: str, params: Sequence[Any]) -> sqlite3.Cursor:
    return conn.execute(sql, params)


class _Worker:
    """One executor thread and the connection that lives on it."""

    def __init__(self) -> None:
        self.executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="wallpaperdb")
        self.conn: sqlite3.Connection | None = None


class Database:
    """Lazily opened SQLite database shared by all accessors.

    *path* defaults to :func:`get_db_path`; ``":memory:"`` gives a private
    in-memory database.  With ``create=False`` a missing file raises
    :class:`NotFoundError` instead of being created.  *clock* supplies the
    timestamps stamped by inserts.
    """

    def __init__(
        self,
        path: Path | str | None = None,
        *,
        create: bool = True,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if path is not None and str(path) == MEMORY:
            self.path: Path | str = MEMORY
        else:
            self.path = Path(path).expanduser() if path else get_db_path()
        self.create = create
        self.clock = clock or _utc_now
        self.watcher = TableWatcher()
        self._worker: _Worker | None = None

    @classmethod
    def in_memory(cls, **kwargs: Any) -> "Database":
        return cls(MEMORY, **kwargs)

    @property
    def is_open(self) -> bool:
        return self._worker is not None and self._worker.conn is not None

    def now(self) -> datetime:
        return self.clock()

    # ── Worker-thread side ─────────────────────────────────────────────────

    def _open(self, worker: _Worker) -> sqlite3.Connection:
        if worker.conn is not None:
            return worker.conn

        if isinstance(self.path, Path):
            if not self.create and not self.path.exists():
                raise NotFoundError(f"Database file not found: {self.path}", "open")
            self.path.parent.mkdir(parents=True, exist_ok=True)
            target = str(self.path)
        else:
            target = MEMORY

        # isolation_level=None: every statement autocommits; migrations issue
        # their own BEGIN/COMMIT.
        conn = sqlite3.connect(
            target, timeout=30, isolation_level=None, check_same_thread=False
        )
        conn.row_factory = sqlite3.Row
        try:
            if target != MEMORY:
                conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=NORMAL")
            conn.execute("PRAGMA busy_timeout=5000")
            ensure_schema(conn)
        except Exception:
            conn.close()
            raise

        log.debug("Opened database %s", target)
        worker.conn = conn
        return conn

    def _call(
        self, worker: _Worker, fn: Callable[..., T], args: tuple[Any, ...], operation: str
    ) -> T:
        with translate_errors(operation):
            conn = self._open(worker)
            return fn(conn, *args)

    def _close_conn(self, worker: _Worker) -> None:
        if worker.conn is not None:
            worker.conn.close()
            worker.conn = None
            log.debug("Closed database %s", self.path)

    # ── Async API ──────────────────────────────────────────────────────────

    async def run(
        self,
        fn: Callable[..., T],
        *args: Any,
        operation: str | None = None,
    ) -> T:
        """Run ``fn(conn, *args)`` on the worker thread and return its result."""
        if self._worker is None:
            self._worker = _Worker()
        worker = self._worker
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            worker.executor, self._call, worker, fn, args, operation or fn.__name__
        )

    async def execute(
        self, sql: str, params: Sequence[Any] = (), *, operation: str
    ) -> sqlite3.Cursor:
        return await self.run(_execute, sql, params, operation=operation)

    async def execute_write(
        self, table: str, sql: str, params: Sequence[Any] = (), *, operation: str
    ) -> sqlite3.Cursor:
        """Run one write statement and notify watchers of *table* if rows changed.

        The notification is posted from the worker thread as soon as the
        statement finishes, so it still fires when the awaiting task has been
        cancelled.
        """
        loop = asyncio.get_running_loop()

        def write(conn: sqlite3.Connection) -> sqlite3.Cursor:
            cur = conn.execute(sql, params)
            if cur.rowcount > 0 and not loop.is_closed():
                log.debug("%s changed %d row(s) in %s", operation, cur.rowcount, table)
                loop.call_soon_threadsafe(self.watcher.notify, table)
            return cur

        return await self.run(write, operation=operation)

    async def schema_version(self) -> int:
        return await self.run(get_schema_version, operation="schema_version")

    async def close(self) -> None:
        """Release the connection; the next operation reopens it.

        Statements already queued on the old worker finish on the old
        connection before it closes; new calls get a fresh worker.
        """
        worker = self._worker
        if worker is None:
            return
        self._worker = None
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(worker.executor, self._close_conn, worker)
        finally:
            worker.executor.shutdown(wait=False)

    async def __aenter__(self) -> "Database":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
