"""Explicit change notification for live (re-emitting) queries.

Every committed write publishes the set of tables it touched. A `LiveQuery`
subscribes to the tables its result depends on and re-runs itself whenever
one of them changes. Notification happens synchronously in the writer's
thread, before the write call returns; subscribers living on an event loop
are woken through `call_soon_threadsafe`, which is ordered ahead of the
writer's own completion on that loop.
"""

from __future__ import annotations

import asyncio
import itertools
import threading
from typing import TYPE_CHECKING, AsyncIterator, Callable, Generic, Iterable, TypeVar

from loguru import logger
from sqlalchemy.orm import Session

if TYPE_CHECKING:
    from minimaltodo.db.session import Database

T = TypeVar("T")

Listener = Callable[[frozenset[str]], None]


class ChangeNotifier:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._listeners: dict[int, tuple[frozenset[str], Listener]] = {}

    def subscribe(self, topics: Iterable[str], callback: Listener) -> int:
        token = next(self._ids)
        with self._lock:
            self._listeners[token] = (frozenset(topics), callback)
        return token

    def unsubscribe(self, token: int) -> None:
        with self._lock:
            self._listeners.pop(token, None)

    def publish(self, topics: Iterable[str]) -> None:
        changed = frozenset(topics)
        if not changed:
            return
        with self._lock:
            targets = [cb for wanted, cb in self._listeners.values() if wanted & changed]
        for callback in targets:
            try:
                callback(changed)
            except Exception:
                # Listener errors stay with the listener.
                logger.exception("change_listener_failed topics={}", sorted(changed))

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)


class LiveQuery(Generic[T]):
    """A query result that can be read once or observed as an async stream."""

    def __init__(
        self,
        database: "Database",
        tables: Iterable[str],
        query: Callable[[Session], T],
    ) -> None:
        self._database = database
        self.tables = frozenset(tables)
        self._query = query

    def _read(self) -> T:
        with self._database.session() as session:
            return self._query(session)

    async def snapshot(self) -> T:
        return await asyncio.to_thread(self._read)

    async def first(self) -> T:
        return await self.snapshot()

    def __aiter__(self) -> AsyncIterator[T]:
        return self._stream()

    async def _stream(self) -> AsyncIterator[T]:
        loop = asyncio.get_running_loop()
        changed = asyncio.Event()

        def _on_change(_tables: frozenset[str]) -> None:
            try:
                loop.call_soon_threadsafe(changed.set)
            except RuntimeError:
                # Loop already closed; the subscription is about to be dropped.
                pass

        notifier = self._database.notifier
        token = notifier.subscribe(self.tables, _on_change)
        try:
            while True:
                changed.clear()
                yield await self.snapshot()
                await changed.wait()
        finally:
            notifier.unsubscribe(token)


def mark_changed(session: Session, *tables: str) -> None:
    """Record tables touched by bulk statements the unit of work cannot see."""
    session.info.setdefault("changed_tables", set()).update(tables)
