from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from minimaltodo.db.models import Task


def list_active(session: Session) -> list[Task]:
    return list(
        session.scalars(
            select(Task)
            .where(Task.is_completed == False, Task.is_deleted == False)  # noqa: E712
            .order_by(Task.sort_order.asc(), Task.created_at.asc(), Task.id.asc())
        ).all()
    )


def list_completed(session: Session) -> list[Task]:
    return list(
        session.scalars(
            select(Task)
            .where(Task.is_completed == True, Task.is_deleted == False)  # noqa: E712
            .order_by(Task.completed_at.desc(), Task.id.desc())
        ).all()
    )


def list_all(session: Session) -> list[Task]:
    return list(
        session.scalars(
            select(Task)
            .where(Task.is_deleted == False)  # noqa: E712
            .order_by(Task.is_completed.asc(), Task.sort_order.asc(), Task.created_at.asc(), Task.id.asc())
        ).all()
    )


def list_deleted(session: Session) -> list[Task]:
    return list(
        session.scalars(
            select(Task).where(Task.is_deleted == True).order_by(Task.deleted_at.desc(), Task.id.desc())  # noqa: E712
        ).all()
    )


def get_by_id(session: Session, task_id: int) -> Task | None:
    return session.get(Task, task_id)


def next_sort_order(session: Session) -> int:
    current = session.scalar(select(func.max(Task.sort_order)))
    return 0 if current is None else int(current) + 1


def insert(session: Session, task: Task) -> Task:
    session.add(task)
    session.flush()
    return task


def replace(session: Session, task: Task) -> Task | None:
    if session.get(Task, task.id) is None:
        return None
    merged = session.merge(task)
    session.flush()
    return merged


def set_completion(session: Session, task_id: int, completed_at: datetime | None) -> bool:
    res = session.execute(
        update(Task)
        .where(Task.id == task_id)
        .values(is_completed=completed_at is not None, completed_at=completed_at)
    )
    return int(res.rowcount or 0) > 0


def hard_delete(session: Session, task_id: int) -> bool:
    res = session.execute(delete(Task).where(Task.id == task_id))
    return int(res.rowcount or 0) > 0


def soft_delete(session: Session, task_id: int, deleted_at: datetime) -> bool:
    """Mark a task deleted. Returns False when it was already deleted."""
    res = session.execute(
        update(Task)
        .where(Task.id == task_id, Task.is_deleted == False)  # noqa: E712
        .values(is_deleted=True, deleted_at=deleted_at)
    )
    return int(res.rowcount or 0) > 0


def restore(session: Session, task_id: int) -> bool:
    res = session.execute(
        update(Task)
        .where(Task.id == task_id, Task.is_deleted == True)  # noqa: E712
        .values(is_deleted=False, deleted_at=None)
    )
    return int(res.rowcount or 0) > 0


def purge_deleted(session: Session) -> int:
    res = session.execute(delete(Task).where(Task.is_deleted == True))  # noqa: E712
    return int(res.rowcount or 0)
