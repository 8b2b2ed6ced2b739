"""Change notification for live queries.

Writes publish the name of the table they changed; every ``QueryStream``
watching that table re-runs its query and yields a fresh snapshot.  Each
subscriber owns a one-slot queue, so a burst of writes while a consumer is
busy collapses into a single refresh.
"""
from __future__ import annotations

import asyncio
import logging
import sqlite3
from typing import TYPE_CHECKING, Any, Callable, Generic, TypeVar

if TYPE_CHECKING:
    from wallpaperdb.db.connection import Database

log = logging.getLogger(__name__)

T = TypeVar("T")


class TableWatcher:
    """Per-table registry of subscriber queues."""

    def __init__(self) -> None:
        self._subscribers: dict[str, set[asyncio.Queue[None]]] = {}

    def subscribe(self, table: str) -> asyncio.Queue[None]:
        queue: asyncio.Queue[None] = asyncio.Queue(maxsize=1)
        self._subscribers.setdefault(table, set()).add(queue)
        return queue

    def unsubscribe(self, table: str, queue: asyncio.Queue[None]) -> None:
        subs = self._subscribers.get(table)
        if not subs:
            return
        subs.discard(queue)
        if not subs:
            del self._subscribers[table]

    def notify(self, *tables: str) -> None:
        """Wake every subscriber of *tables* (no-op for unwatched tables)."""
        for table in tables:
            for queue in list(self._subscribers.get(table, ())):
                if queue.empty():
                    queue.put_nowait(None)

    def subscriber_count(self, table: str) -> int:
        return len(self._subscribers.get(table, ()))


class QueryStream(Generic[T]):
    """A live query over one table.

    Iterating yields the current result first, then a new result after every
    write that changes *table*, until ``aclose()`` is called::

        async with repo.watch_recent_images(limit=20) as stream:
            async for images in stream:
                render(images)

    Cancelling the consuming task stops the iteration; leaving the
    ``async with`` block releases the subscription.
    """

    def __init__(
        self,
        db: "Database",
        table: str,
        query: Callable[[sqlite3.Connection], T],
        operation: str,
    ) -> None:
        self._db = db
        self.table = table
        self._query = query
        self._operation = operation
        self._queue: asyncio.Queue[None] | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> "QueryStream[T]":
        return self

    async def __anext__(self) -> T:
        if self._closed:
            raise StopAsyncIteration
        if self._queue is None:
            # subscribe on first use; the initial snapshot covers earlier writes
            self._queue = self._db.watcher.subscribe(self.table)
        else:
            await self._queue.get()
            if self._closed:
                raise StopAsyncIteration
        return await self._db.run(self._query, operation=self._operation)

    async def first(self) -> T:
        """Return the current snapshot and release the subscription."""
        try:
            return await self.__anext__()
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._queue is not None:
            self._db.watcher.unsubscribe(self.table, self._queue)
            # wake a consumer blocked in __anext__
            if self._queue.empty():
                self._queue.put_nowait(None)
        log.debug("Closed %s stream on %s", self._operation, self.table)

    async def __aenter__(self) -> "QueryStream[T]":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
