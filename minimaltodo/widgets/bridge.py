"""Home-screen widget surface.

Widgets hold no state of their own: every payload is rebuilt from the
database for today's logical date, and every tap is turned into an ordinary
repository call followed by a refresh push to the sink.
"""

from __future__ import annotations

import asyncio
from typing import Callable

from loguru import logger

from minimaltodo.core.goal_repository import GoalRepository
from minimaltodo.core.logical_date import Clock, logical_date, now_local
from minimaltodo.core.settings_store import SettingsStore
from minimaltodo.core.task_repository import TaskRepository
from minimaltodo.db.models import TargetType
from minimaltodo.db.session import Database
from minimaltodo.widgets.snapshot import (
    KIND_GOALS,
    KIND_TASKS,
    build_goal_rows,
    build_task_rows,
    format_goal_rows,
    format_task_rows,
)

Sink = Callable[[str, str], None]


def next_quantity_value(current: float, target: float) -> float:
    """One tap on a quantity goal: +1 until the target is met, then back to 0."""
    if current >= target:
        return 0.0
    return current + 1.0


class WidgetBridge:
    def __init__(
        self,
        database: Database,
        settings_store: SettingsStore,
        goals: GoalRepository,
        tasks: TaskRepository,
        sink: Sink | None = None,
        clock: Clock = now_local,
    ) -> None:
        self._db = database
        self._settings = settings_store
        self._goals = goals
        self._tasks = tasks
        self._sink = sink
        self._clock = clock

    def today(self) -> str:
        return logical_date(self._clock(), self._settings.get())

    async def goals_snapshot(self) -> str:
        date = self.today()

        def _build() -> str:
            with self._db.session() as session:
                return format_goal_rows(build_goal_rows(session, date))

        return await asyncio.to_thread(_build)

    async def tasks_snapshot(self) -> str:
        def _build() -> str:
            with self._db.session() as session:
                return format_task_rows(build_task_rows(session))

        return await asyncio.to_thread(_build)

    async def refresh_goals(self) -> str:
        payload = await self.goals_snapshot()
        self._push(KIND_GOALS, payload)
        return payload

    async def refresh_tasks(self) -> str:
        payload = await self.tasks_snapshot()
        self._push(KIND_TASKS, payload)
        return payload

    async def refresh_all(self) -> None:
        await self.refresh_goals()
        await self.refresh_tasks()

    def _push(self, kind: str, payload: str) -> None:
        if self._sink is None:
            return
        try:
            self._sink(kind, payload)
        except Exception:
            logger.exception("widget_sink_failed kind={}", kind)

    async def cycle_goal_progress(self, goal_id: int) -> str:
        goal = await self._goals.get_goal(goal_id)
        date = self.today()
        if goal.target_type is TargetType.QUANTITY:
            existing = await self._goals.get_log(goal_id, date)
            current = existing.value if existing is not None else 0.0
            next_value = next_quantity_value(current, goal.target_value)
            if next_value == 0:
                await self._goals.clear_progress(goal_id, date)
            else:
                await self._goals.update_progress(goal_id, date, next_value, goal.target_value)
            logger.info("widget_goal_cycled id={} date={} value={}", goal_id, date, next_value)
        else:
            existing = await self._goals.get_log(goal_id, date)
            await self._goals.toggle_completion(
                goal_id,
                date,
                existing.value if existing is not None else 0.0,
                goal.target_value,
            )
            logger.info("widget_goal_toggled id={} date={}", goal_id, date)
        return await self.refresh_goals()

    async def toggle_task_completion(self, task_id: int) -> str:
        completed = await self._tasks.toggle_task(task_id)
        logger.info("widget_task_toggled id={} completed={}", task_id, completed)
        return await self.refresh_tasks()
