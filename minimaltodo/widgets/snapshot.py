from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from minimaltodo.db.models import ensure_utc
from minimaltodo.db.repositories import completion_logs_repo, goals_repo, tasks_repo

KIND_GOALS = "goals"
KIND_TASKS = "tasks"

GOAL_HEADER = ["id", "name", "isBinary", "targetValue", "currentValue", "isCompleted"]
TASK_HEADER = ["id", "title", "dueDate"]

_SEPARATOR = "|"


@dataclass(frozen=True)
class GoalRow:
    id: int
    name: str
    is_binary: bool
    target_value: float
    current_value: float
    is_completed: bool


@dataclass(frozen=True)
class TaskRow:
    id: int
    title: str
    due_date: int | None


def _clean(text: str | None) -> str:
    value = text or ""
    for token in ("\r\n", "\n", "\r", _SEPARATOR):
        value = value.replace(token, " ")
    return value


def _fmt_bool(value: bool) -> str:
    return "true" if value else "false"


def _fmt_number(value: float) -> str:
    return repr(float(value))


def _epoch_millis(value: datetime | None) -> int | None:
    value = ensure_utc(value)
    if value is None:
        return None
    return int(value.timestamp() * 1000)


def build_goal_rows(session: Session, date: str) -> list[GoalRow]:
    goals = goals_repo.list_active(session)
    logs = {log.goal_id: log for log in completion_logs_repo.list_for_date(session, date)}
    out: list[GoalRow] = []
    for goal in goals:
        log = logs.get(goal.id)
        out.append(
            GoalRow(
                id=goal.id,
                name=_clean(goal.name),
                is_binary=goal.target_type.is_binary,
                target_value=float(goal.target_value),
                current_value=float(log.value) if log is not None else 0.0,
                is_completed=bool(log.is_completed) if log is not None else False,
            )
        )
    return out


def build_task_rows(session: Session) -> list[TaskRow]:
    return [
        TaskRow(id=task.id, title=_clean(task.title), due_date=_epoch_millis(task.due_date))
        for task in tasks_repo.list_active(session)
    ]


def format_goal_rows(rows: list[GoalRow]) -> str:
    return "\n".join(
        _SEPARATOR.join(
            [
                str(row.id),
                _clean(row.name),
                _fmt_bool(row.is_binary),
                _fmt_number(row.target_value),
                _fmt_number(row.current_value),
                _fmt_bool(row.is_completed),
            ]
        )
        for row in rows
    )


def format_task_rows(rows: list[TaskRow]) -> str:
    return "\n".join(
        _SEPARATOR.join([str(row.id), _clean(row.title), "" if row.due_date is None else str(row.due_date)])
        for row in rows
    )


def _split(payload: str, width: int) -> list[list[str]]:
    out: list[list[str]] = []
    for line in payload.splitlines():
        if not line.strip():
            continue
        parts = line.split(_SEPARATOR)
        if len(parts) != width:
            continue
        out.append(parts)
    return out


def parse_goal_rows(payload: str) -> list[GoalRow]:
    """Read back a goals payload; malformed lines are skipped."""
    rows: list[GoalRow] = []
    for parts in _split(payload, len(GOAL_HEADER)):
        try:
            rows.append(
                GoalRow(
                    id=int(parts[0]),
                    name=parts[1],
                    is_binary=parts[2] == "true",
                    target_value=float(parts[3]),
                    current_value=float(parts[4]),
                    is_completed=parts[5] == "true",
                )
            )
        except ValueError:
            continue
    return rows


def parse_task_rows(payload: str) -> list[TaskRow]:
    rows: list[TaskRow] = []
    for parts in _split(payload, len(TASK_HEADER)):
        try:
            rows.append(TaskRow(id=int(parts[0]), title=parts[1], due_date=int(parts[2]) if parts[2] else None))
        except ValueError:
            continue
    return rows
