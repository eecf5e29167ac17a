from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from minimaltodo.db.models import Goal


def list_active(session: Session) -> list[Goal]:
    return list(
        session.scalars(
            select(Goal)
            .where(Goal.is_archived == False, Goal.is_deleted == False)  # noqa: E712
            .order_by(Goal.sort_order.asc(), Goal.created_at.asc(), Goal.id.asc())
        ).all()
    )


def list_all(session: Session) -> list[Goal]:
    return list(
        session.scalars(
            select(Goal).where(Goal.is_deleted == False).order_by(Goal.sort_order.asc(), Goal.id.asc())  # noqa: E712
        ).all()
    )


def list_deleted(session: Session) -> list[Goal]:
    return list(
        session.scalars(
            select(Goal).where(Goal.is_deleted == True).order_by(Goal.deleted_at.desc(), Goal.id.desc())  # noqa: E712
        ).all()
    )


def get_by_id(session: Session, goal_id: int) -> Goal | None:
    return session.get(Goal, goal_id)


def next_sort_order(session: Session) -> int:
    current = session.scalar(select(func.max(Goal.sort_order)))
    return 0 if current is None else int(current) + 1


def insert(session: Session, goal: Goal) -> Goal:
    session.add(goal)
    session.flush()
    return goal


def replace(session: Session, goal: Goal) -> Goal | None:
    if session.get(Goal, goal.id) is None:
        return None
    merged = session.merge(goal)
    session.flush()
    return merged


def hard_delete(session: Session, goal_id: int) -> bool:
    res = session.execute(delete(Goal).where(Goal.id == goal_id))
    return int(res.rowcount or 0) > 0


def soft_delete(session: Session, goal_id: int, deleted_at: datetime) -> bool:
    """Mark a goal deleted. Returns False when it was already deleted."""
    res = session.execute(
        update(Goal)
        .where(Goal.id == goal_id, Goal.is_deleted == False)  # noqa: E712
        .values(is_deleted=True, deleted_at=deleted_at)
    )
    return int(res.rowcount or 0) > 0


def restore(session: Session, goal_id: int) -> bool:
    res = session.execute(
        update(Goal)
        .where(Goal.id == goal_id, Goal.is_deleted == True)  # noqa: E712
        .values(is_deleted=False, deleted_at=None)
    )
    return int(res.rowcount or 0) > 0


def purge_deleted(session: Session) -> int:
    res = session.execute(delete(Goal).where(Goal.is_deleted == True))  # noqa: E712
    return int(res.rowcount or 0)
