"""Daily goals: CRUD, soft-delete lifecycle and per-day completion logs."""

from __future__ import annotations

import asyncio
from contextlib import suppress
from datetime import datetime
from typing import TYPE_CHECKING, AsyncIterator, Callable

from loguru import logger

from minimaltodo.core.logical_date import Clock, logical_dates, now_local, validate_date_string
from minimaltodo.core.validation import paired_timestamp, require_number, require_text
from minimaltodo.db.live import LiveQuery
from minimaltodo.db.models import TABLE_COMPLETION_LOGS, TABLE_GOALS, CompletionLog, Goal, TargetType, utc_now
from minimaltodo.db.repositories import completion_logs_repo, goals_repo
from minimaltodo.db.session import Database
from minimaltodo.errors import NotFound

if TYPE_CHECKING:
    from minimaltodo.core.settings_store import SettingsStore


class GoalRepository:
    def __init__(self, database: Database, clock: Callable[[], datetime] = utc_now) -> None:
        self._db = database
        self._clock = clock

    # ── Observers ─────────────────────────────────────────────

    def observe_active_goals(self) -> LiveQuery[list[Goal]]:
        return self._db.live({TABLE_GOALS}, goals_repo.list_active)

    def observe_all_goals(self) -> LiveQuery[list[Goal]]:
        return self._db.live({TABLE_GOALS}, goals_repo.list_all)

    def observe_deleted_goals(self) -> LiveQuery[list[Goal]]:
        return self._db.live({TABLE_GOALS}, goals_repo.list_deleted)

    def observe_completion_logs_for_date(self, date: str) -> LiveQuery[list[CompletionLog]]:
        date = validate_date_string(date)
        return self._db.live(
            {TABLE_COMPLETION_LOGS},
            lambda session: completion_logs_repo.list_for_date(session, date),
        )

    def observe_goal_history(self, goal_id: int) -> LiveQuery[list[CompletionLog]]:
        return self._db.live(
            {TABLE_COMPLETION_LOGS},
            lambda session: completion_logs_repo.list_for_goal(session, goal_id),
        )

    async def observe_today_logs(
        self,
        settings_store: "SettingsStore",
        *,
        clock: Clock = now_local,
    ) -> AsyncIterator[tuple[str, list[CompletionLog]]]:
        """Logs of the current logical day, following day rollovers.

        Yields `(date, logs)`; when the logical date moves on, observation
        switches to the new date and the old one is dropped.
        """
        dates = logical_dates(settings_store.changes(), clock=clock)
        logs_stream: AsyncIterator[list[CompletionLog]] | None = None
        pending_logs: asyncio.Task | None = None
        pending_date: asyncio.Task = asyncio.ensure_future(anext(dates))
        current: str | None = None
        try:
            while True:
                waiting = {t for t in (pending_date, pending_logs) if t is not None}
                done, _ = await asyncio.wait(waiting, return_when=asyncio.FIRST_COMPLETED)
                if pending_date in done:
                    current = pending_date.result()
                    pending_date = asyncio.ensure_future(anext(dates))
                    await _cancel(pending_logs)
                    if logs_stream is not None:
                        await logs_stream.aclose()
                    logs_stream = aiter(self.observe_completion_logs_for_date(current))
                    pending_logs = asyncio.ensure_future(anext(logs_stream))
                    continue
                if pending_logs in done:
                    logs = pending_logs.result()
                    pending_logs = asyncio.ensure_future(anext(logs_stream))
                    yield current, logs
        finally:
            await _cancel(pending_logs)
            await _cancel(pending_date)
            if logs_stream is not None:
                await logs_stream.aclose()
            await dates.aclose()

    # ── Snapshots ─────────────────────────────────────────────

    async def get_goal(self, goal_id: int) -> Goal:
        return await asyncio.to_thread(self._get_goal, goal_id)

    def _get_goal(self, goal_id: int) -> Goal:
        with self._db.session() as session:
            goal = goals_repo.get_by_id(session, goal_id)
        if goal is None:
            raise NotFound("Goal", goal_id)
        return goal

    async def active_goals(self) -> list[Goal]:
        return await self.observe_active_goals().snapshot()

    async def get_log(self, goal_id: int, date: str) -> CompletionLog | None:
        date = validate_date_string(date)

        def _read() -> CompletionLog | None:
            with self._db.session() as session:
                return completion_logs_repo.get_log(session, goal_id, date)

        return await asyncio.to_thread(_read)

    async def logs_for_date(self, date: str) -> list[CompletionLog]:
        return await self.observe_completion_logs_for_date(date).snapshot()

    # ── Goal lifecycle ────────────────────────────────────────

    async def add_goal(
        self,
        name: str,
        target_type: TargetType = TargetType.BINARY,
        target_value: float = 1.0,
        unit: str = "",
    ) -> int:
        name = require_text(name, "name")
        target_type = TargetType(target_type)
        target_value = require_number(target_value, "target_value", positive=True)
        return await asyncio.to_thread(self._add_goal, name, target_type, target_value, (unit or "").strip())

    def _add_goal(self, name: str, target_type: TargetType, target_value: float, unit: str) -> int:
        with self._db.transaction() as session:
            goal = goals_repo.insert(
                session,
                Goal(
                    name=name,
                    target_type=target_type,
                    target_value=target_value,
                    unit=unit,
                    sort_order=goals_repo.next_sort_order(session),
                    created_at=self._clock(),
                ),
            )
            goal_id = goal.id
        logger.info("goal_created id={} type={} target={}", goal_id, target_type.value, target_value)
        return goal_id

    async def update_goal(self, goal: Goal) -> None:
        goal.name = require_text(goal.name, "name")
        goal.target_value = require_number(goal.target_value, "target_value", positive=True)
        goal.deleted_at = paired_timestamp(goal.is_deleted, goal.deleted_at, self._clock)
        await asyncio.to_thread(self._update_goal, goal)

    def _update_goal(self, goal: Goal) -> None:
        with self._db.transaction() as session:
            if goals_repo.replace(session, goal) is None:
                logger.warning("goal_update_missing id={}", goal.id)
                raise NotFound("Goal", goal.id)
        logger.info("goal_updated id={}", goal.id)

    async def delete_goal(self, goal: Goal) -> None:
        """Soft delete; repeating it keeps the original deleted_at."""
        await asyncio.to_thread(self._soft_delete, goal.id)

    def _soft_delete(self, goal_id: int) -> None:
        with self._db.transaction() as session:
            if not goals_repo.soft_delete(session, goal_id, self._clock()):
                if goals_repo.get_by_id(session, goal_id) is None:
                    logger.warning("goal_delete_missing id={}", goal_id)
                    raise NotFound("Goal", goal_id)
                return
        logger.info("goal_soft_deleted id={}", goal_id)

    async def restore_goal(self, goal: Goal) -> None:
        await asyncio.to_thread(self._restore, goal.id)

    def _restore(self, goal_id: int) -> None:
        with self._db.transaction() as session:
            if not goals_repo.restore(session, goal_id):
                if goals_repo.get_by_id(session, goal_id) is None:
                    logger.warning("goal_restore_missing id={}", goal_id)
                    raise NotFound("Goal", goal_id)
                return
        logger.info("goal_restored id={}", goal_id)

    async def permanently_delete_goal(self, goal: Goal) -> None:
        """Hard delete; the goal's completion logs cascade with it."""
        await asyncio.to_thread(self._hard_delete, goal.id)

    def _hard_delete(self, goal_id: int) -> None:
        with self._db.transaction() as session:
            if not goals_repo.hard_delete(session, goal_id):
                logger.warning("goal_purge_missing id={}", goal_id)
                raise NotFound("Goal", goal_id)
        logger.info("goal_purged id={}", goal_id)

    async def empty_deleted_goals(self) -> int:
        return await asyncio.to_thread(self._empty_deleted)

    def _empty_deleted(self) -> int:
        with self._db.transaction() as session:
            purged = goals_repo.purge_deleted(session)
        logger.info("goals_emptied count={}", purged)
        return purged

    # ── Completion logs ───────────────────────────────────────

    async def toggle_completion(
        self,
        goal_id: int,
        date: str,
        current_value: float,
        target_value: float,
    ) -> CompletionLog | None:
        """Flip the day between "not done" and "fully done".

        A completed log is removed; anything else (no log, or partial progress)
        jumps straight to `target_value`. `current_value` is part of the call
        contract but never used as a starting point: toggling is not an
        increment. Returns the resulting log, or None when it was removed.
        """
        date = validate_date_string(date)
        target_value = require_number(target_value, "target_value")
        return await asyncio.to_thread(self._toggle, goal_id, date, target_value)

    def _toggle(self, goal_id: int, date: str, target_value: float) -> CompletionLog | None:
        with self._db.transaction() as session:
            self._require_goal(session, goal_id)
            existing = completion_logs_repo.get_log(session, goal_id, date)
            if existing is not None and existing.is_completed:
                completion_logs_repo.delete_log(session, goal_id, date)
                result = None
            else:
                result = completion_logs_repo.upsert(
                    session, goal_id=goal_id, date=date, value=target_value, is_completed=True
                )
        logger.info("goal_toggled id={} date={} completed={}", goal_id, date, result is not None)
        return result

    async def update_progress(
        self,
        goal_id: int,
        date: str,
        value: float,
        target_value: float,
    ) -> CompletionLog:
        """Store `value` for the day, even 0; completed once it reaches the target."""
        date = validate_date_string(date)
        value = require_number(value, "value")
        target_value = require_number(target_value, "target_value")
        return await asyncio.to_thread(self._update_progress, goal_id, date, value, target_value)

    def _update_progress(self, goal_id: int, date: str, value: float, target_value: float) -> CompletionLog:
        with self._db.transaction() as session:
            self._require_goal(session, goal_id)
            log = completion_logs_repo.upsert(
                session, goal_id=goal_id, date=date, value=value, is_completed=value >= target_value
            )
        logger.info("goal_progress id={} date={} value={} completed={}", goal_id, date, value, log.is_completed)
        return log

    async def clear_progress(self, goal_id: int, date: str) -> bool:
        """Drop the day's log; no log and no progress mean the same thing."""
        date = validate_date_string(date)
        return await asyncio.to_thread(self._clear_progress, goal_id, date)

    def _clear_progress(self, goal_id: int, date: str) -> bool:
        with self._db.transaction() as session:
            self._require_goal(session, goal_id)
            removed = completion_logs_repo.delete_log(session, goal_id, date)
        logger.info("goal_progress_cleared id={} date={} removed={}", goal_id, date, removed)
        return removed

    @staticmethod
    def _require_goal(session, goal_id: int) -> Goal:
        goal = goals_repo.get_by_id(session, goal_id)
        if goal is None:
            logger.warning("goal_missing id={}", goal_id)
            raise NotFound("Goal", goal_id)
        return goal


async def _cancel(task: asyncio.Task | None) -> None:
    if task is None or task.done():
        return
    task.cancel()
    with suppress(asyncio.CancelledError, StopAsyncIteration):
        await task
