from __future__ import annotations

import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterable, Iterator, TypeVar

from loguru import logger
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import ORMExecuteState, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from minimaltodo.db.live import ChangeNotifier, LiveQuery, mark_changed
from minimaltodo.db.models import TABLE_COMPLETION_LOGS, TABLE_GOALS, Base, Goal

T = TypeVar("T")


def build_database_url(sqlite_path: str) -> str:
    if sqlite_path in {"", ":memory:"}:
        return "sqlite+pysqlite:///:memory:"
    db_path = Path(sqlite_path)
    if not db_path.is_absolute():
        db_path = Path.cwd() / db_path
    db_path = db_path.resolve()
    return f"sqlite+pysqlite:///{db_path.as_posix()}"


def _set_sqlite_pragma(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _record_flush(session: Session, _flush_context) -> None:
    # new/dirty/deleted still hold their pre-flush contents here.
    for obj in list(session.new) + list(session.dirty) + list(session.deleted):
        table = getattr(obj, "__tablename__", None)
        if table:
            mark_changed(session, table)
    if any(isinstance(obj, Goal) for obj in session.deleted):
        # completion_logs rows go with their goal through ON DELETE CASCADE.
        mark_changed(session, TABLE_COMPLETION_LOGS)


def _record_statement(orm_execute_state: ORMExecuteState) -> None:
    if not (orm_execute_state.is_insert or orm_execute_state.is_update or orm_execute_state.is_delete):
        return
    table = getattr(orm_execute_state.statement, "table", None)
    if table is None:
        return
    session = orm_execute_state.session
    mark_changed(session, table.name)
    if orm_execute_state.is_delete and table.name == TABLE_GOALS:
        mark_changed(session, TABLE_COMPLETION_LOGS)


class Database:
    """The one persistence handle of the process.

    Constructed explicitly at the process root and handed to every consumer;
    nothing re-creates it implicitly.
    """

    def __init__(self, url: str, *, echo: bool = False) -> None:
        self.url = url
        # Reads and writes run on worker threads.
        kwargs: dict = {"future": True, "echo": echo, "connect_args": {"check_same_thread": False}}
        if url.endswith(":memory:"):
            # One shared connection so every thread sees the same in-memory database.
            kwargs["poolclass"] = StaticPool
        else:
            Path(url.split("///", 1)[-1]).parent.mkdir(parents=True, exist_ok=True)
        self.engine: Engine = create_engine(url, **kwargs)
        event.listen(self.engine, "connect", _set_sqlite_pragma)
        self._sessions = sessionmaker(
            bind=self.engine,
            autoflush=False,
            autocommit=False,
            expire_on_commit=False,
            future=True,
        )
        event.listen(self._sessions, "after_flush", _record_flush)
        event.listen(self._sessions, "do_orm_execute", _record_statement)
        self._write_lock = threading.RLock()
        self.notifier = ChangeNotifier()

    @classmethod
    def from_path(cls, sqlite_path: str) -> "Database":
        return cls(build_database_url(sqlite_path))

    def create_schema(self) -> None:
        Base.metadata.create_all(self.engine)

    @contextmanager
    def session(self) -> Iterator[Session]:
        session = self._sessions()
        try:
            yield session
        finally:
            session.close()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Serialised write unit; publishes touched tables once committed."""
        with self._write_lock:
            session = self._sessions()
            try:
                yield session
                session.commit()
                changed = set(session.info.get("changed_tables", ()))
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()
            if changed:
                logger.debug("db_commit tables={}", sorted(changed))
                self.notifier.publish(changed)

    def live(self, tables: Iterable[str], query: Callable[[Session], T]) -> LiveQuery[T]:
        return LiveQuery(self, tables, query)

    def dispose(self) -> None:
        self.engine.dispose()
