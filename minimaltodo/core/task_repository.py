"""One-off tasks: CRUD, completion and soft-delete lifecycle.

Completion and soft deletion are independent flags: a task can be completed
and deleted at the same time, and both the active and the completed views
leave deleted rows out.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Callable

from loguru import logger

from minimaltodo.core.validation import paired_timestamp, require_text
from minimaltodo.db.live import LiveQuery
from minimaltodo.db.models import TABLE_TASKS, Task, ensure_utc, utc_now
from minimaltodo.db.repositories import tasks_repo
from minimaltodo.db.session import Database
from minimaltodo.errors import NotFound


class TaskRepository:
    def __init__(self, database: Database, clock: Callable[[], datetime] = utc_now) -> None:
        self._db = database
        self._clock = clock

    def observe_active_tasks(self) -> LiveQuery[list[Task]]:
        return self._db.live({TABLE_TASKS}, tasks_repo.list_active)

    def observe_completed_tasks(self) -> LiveQuery[list[Task]]:
        return self._db.live({TABLE_TASKS}, tasks_repo.list_completed)

    def observe_all_tasks(self) -> LiveQuery[list[Task]]:
        return self._db.live({TABLE_TASKS}, tasks_repo.list_all)

    def observe_deleted_tasks(self) -> LiveQuery[list[Task]]:
        return self._db.live({TABLE_TASKS}, tasks_repo.list_deleted)

    async def active_tasks(self) -> list[Task]:
        return await self.observe_active_tasks().snapshot()

    async def get_task(self, task_id: int) -> Task:
        return await asyncio.to_thread(self._get_task, task_id)

    def _get_task(self, task_id: int) -> Task:
        with self._db.session() as session:
            task = tasks_repo.get_by_id(session, task_id)
        if task is None:
            raise NotFound("Task", task_id)
        return task

    async def add_task(self, title: str, due_date: datetime | None = None) -> int:
        title = require_text(title, "title")
        return await asyncio.to_thread(self._add_task, title, ensure_utc(due_date))

    def _add_task(self, title: str, due_date: datetime | None) -> int:
        with self._db.transaction() as session:
            task = tasks_repo.insert(
                session,
                Task(
                    title=title,
                    due_date=due_date,
                    sort_order=tasks_repo.next_sort_order(session),
                    created_at=self._clock(),
                ),
            )
            task_id = task.id
        logger.info("task_created id={} due={}", task_id, due_date.isoformat() if due_date else "-")
        return task_id

    async def update_task(self, task: Task) -> None:
        task.title = require_text(task.title, "title")
        task.due_date = ensure_utc(task.due_date)
        task.completed_at = paired_timestamp(task.is_completed, task.completed_at, self._clock)
        task.deleted_at = paired_timestamp(task.is_deleted, task.deleted_at, self._clock)
        await asyncio.to_thread(self._update_task, task)

    def _update_task(self, task: Task) -> None:
        with self._db.transaction() as session:
            if tasks_repo.replace(session, task) is None:
                logger.warning("task_update_missing id={}", task.id)
                raise NotFound("Task", task.id)
        logger.info("task_updated id={}", task.id)

    async def complete_task(self, task: Task) -> None:
        await asyncio.to_thread(self._set_completion, task.id, True)

    async def uncomplete_task(self, task: Task) -> None:
        await asyncio.to_thread(self._set_completion, task.id, False)

    async def toggle_task(self, task_id: int) -> bool:
        """Flip completion; returns the new `is_completed` value."""
        return await asyncio.to_thread(self._toggle, task_id)

    def _toggle(self, task_id: int) -> bool:
        with self._db.transaction() as session:
            task = tasks_repo.get_by_id(session, task_id)
            if task is None:
                logger.warning("task_toggle_missing id={}", task_id)
                raise NotFound("Task", task_id)
            completed = not task.is_completed
            tasks_repo.set_completion(session, task_id, self._clock() if completed else None)
        logger.info("task_toggled id={} completed={}", task_id, completed)
        return completed

    def _set_completion(self, task_id: int, completed: bool) -> None:
        with self._db.transaction() as session:
            if not tasks_repo.set_completion(session, task_id, self._clock() if completed else None):
                logger.warning("task_completion_missing id={}", task_id)
                raise NotFound("Task", task_id)
        logger.info("task_completion id={} completed={}", task_id, completed)

    async def delete_task(self, task: Task) -> None:
        """Soft delete; repeating it keeps the original deleted_at."""
        await asyncio.to_thread(self._soft_delete, task.id)

    def _soft_delete(self, task_id: int) -> None:
        with self._db.transaction() as session:
            if not tasks_repo.soft_delete(session, task_id, self._clock()):
                if tasks_repo.get_by_id(session, task_id) is None:
                    logger.warning("task_delete_missing id={}", task_id)
                    raise NotFound("Task", task_id)
                return
        logger.info("task_soft_deleted id={}", task_id)

    async def restore_task(self, task: Task) -> None:
        await asyncio.to_thread(self._restore, task.id)

    def _restore(self, task_id: int) -> None:
        with self._db.transaction() as session:
            if not tasks_repo.restore(session, task_id):
                if tasks_repo.get_by_id(session, task_id) is None:
                    logger.warning("task_restore_missing id={}", task_id)
                    raise NotFound("Task", task_id)
                return
        logger.info("task_restored id={}", task_id)

    async def permanently_delete_task(self, task: Task) -> None:
        await asyncio.to_thread(self._hard_delete, task.id)

    def _hard_delete(self, task_id: int) -> None:
        with self._db.transaction() as session:
            if not tasks_repo.hard_delete(session, task_id):
                logger.warning("task_purge_missing id={}", task_id)
                raise NotFound("Task", task_id)
        logger.info("task_purged id={}", task_id)

    async def empty_deleted_tasks(self) -> int:
        return await asyncio.to_thread(self._empty_deleted)

    def _empty_deleted(self) -> int:
        with self._db.transaction() as session:
            purged = tasks_repo.purge_deleted(session)
        logger.info("tasks_emptied count={}", purged)
        return purged
