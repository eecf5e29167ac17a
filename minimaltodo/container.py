from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from minimaltodo.config import Settings
from minimaltodo.core.goal_repository import GoalRepository
from minimaltodo.core.logical_date import now_local
from minimaltodo.core.settings_store import SettingsStore
from minimaltodo.core.task_repository import TaskRepository
from minimaltodo.db.session import Database
from minimaltodo.widgets.bridge import Sink, WidgetBridge


@dataclass
class AppContainer:
    settings: Settings
    database: Database
    settings_store: SettingsStore
    goals: GoalRepository
    tasks: TaskRepository
    widgets: WidgetBridge

    def close(self) -> None:
        self.database.dispose()
        logger.info("container_closed db={}", self.database.url)


def build_container(settings: Settings, sink: Sink | None = None, *, create_schema: bool = False) -> AppContainer:
    """Wire every long-lived object once; callers share this single instance."""
    database = Database.from_path(settings.sqlite_path)
    if create_schema:
        database.create_schema()
    settings_store = SettingsStore(settings.preferences_path)
    goals = GoalRepository(database)
    tasks = TaskRepository(database)
    widgets = WidgetBridge(
        database,
        settings_store,
        goals,
        tasks,
        sink=sink,
        clock=lambda: now_local(settings.timezone),
    )
    logger.info("container_ready db={} preferences={}", database.url, settings.preferences_path)
    return AppContainer(
        settings=settings,
        database=database,
        settings_store=settings_store,
        goals=goals,
        tasks=tasks,
        widgets=widgets,
    )
