from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from minimaltodo.core.goal_repository import GoalRepository
from minimaltodo.core.settings_store import SettingsStore
from minimaltodo.core.task_repository import TaskRepository
from minimaltodo.db.session import Database


class StepClock:
    """UTC clock that moves one second per call so timestamps stay ordered."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current = self.current + timedelta(seconds=1)
        return self.current


@pytest.fixture()
def database(tmp_path: Path):
    db = Database.from_path(str(tmp_path / "minimaltodo.db"))
    db.create_schema()
    yield db
    db.dispose()


@pytest.fixture()
def clock() -> StepClock:
    return StepClock()


@pytest.fixture()
def goals(database: Database, clock: StepClock) -> GoalRepository:
    return GoalRepository(database, clock=clock)


@pytest.fixture()
def tasks(database: Database, clock: StepClock) -> TaskRepository:
    return TaskRepository(database, clock=clock)


@pytest.fixture()
def settings_store(tmp_path: Path) -> SettingsStore:
    return SettingsStore(tmp_path / "preferences.json")
