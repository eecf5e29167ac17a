from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from minimaltodo.db.models import CompletionLog


def get_log(session: Session, goal_id: int, date: str) -> CompletionLog | None:
    return session.scalar(
        select(CompletionLog).where(CompletionLog.goal_id == goal_id, CompletionLog.date == date).limit(1)
    )


def list_for_date(session: Session, date: str) -> list[CompletionLog]:
    return list(
        session.scalars(
            select(CompletionLog).where(CompletionLog.date == date).order_by(CompletionLog.goal_id.asc())
        ).all()
    )


def list_for_goal(session: Session, goal_id: int) -> list[CompletionLog]:
    return list(
        session.scalars(
            select(CompletionLog).where(CompletionLog.goal_id == goal_id).order_by(CompletionLog.date.desc())
        ).all()
    )


def upsert(session: Session, *, goal_id: int, date: str, value: float, is_completed: bool) -> CompletionLog:
    """Insert or update the single log for (goal_id, date) in one statement.

    The ON CONFLICT clause rides on the unique (goal_id, date) index, so two
    writers can never leave two rows for the same key, and an existing row
    keeps its id.
    """
    stmt = sqlite_insert(CompletionLog).values(
        goal_id=goal_id,
        date=date,
        value=float(value),
        is_completed=bool(is_completed),
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[CompletionLog.goal_id, CompletionLog.date],
        set_={"value": stmt.excluded["value"], "is_completed": stmt.excluded["is_completed"]},
    )
    session.execute(stmt)
    log = get_log(session, goal_id, date)
    if log is not None:
        session.refresh(log)
    return log


def delete_log(session: Session, goal_id: int, date: str) -> bool:
    res = session.execute(
        delete(CompletionLog).where(CompletionLog.goal_id == goal_id, CompletionLog.date == date)
    )
    return int(res.rowcount or 0) > 0
