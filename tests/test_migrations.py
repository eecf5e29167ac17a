import asyncio
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import inspect

from minimaltodo.core.goal_repository import GoalRepository
from minimaltodo.db.session import Database, build_database_url

ROOT = Path(__file__).resolve().parents[1]


def _alembic_config(db_path: Path) -> Config:
    config = Config(str(ROOT / "alembic.ini"))
    config.set_main_option("sqlalchemy.url", build_database_url(str(db_path)))
    return config


def test_upgrade_head_builds_full_schema(tmp_path: Path) -> None:
    db_path = tmp_path / "migrated.db"
    command.upgrade(_alembic_config(db_path), "head")

    database = Database.from_path(str(db_path))
    try:
        inspector = inspect(database.engine)
        assert {"goals", "tasks", "completion_logs"} <= set(inspector.get_table_names())
        goal_columns = {c["name"] for c in inspector.get_columns("goals")}
        task_columns = {c["name"] for c in inspector.get_columns("tasks")}
        assert {"is_deleted", "deleted_at"} <= goal_columns
        assert {"is_deleted", "deleted_at", "due_date", "completed_at"} <= task_columns
        uniques = inspector.get_unique_constraints("completion_logs")
        assert any(sorted(u["column_names"]) == ["date", "goal_id"] for u in uniques)

        goals = GoalRepository(database)

        async def scenario():
            goal_id = await goals.add_goal("Read")
            await goals.toggle_completion(goal_id, "2026-01-01", 0, 1)
            await goals.permanently_delete_goal(await goals.get_goal(goal_id))
            return await goals.logs_for_date("2026-01-01")

        assert asyncio.run(scenario()) == []
    finally:
        database.dispose()


def test_downgrade_to_base(tmp_path: Path) -> None:
    db_path = tmp_path / "roundtrip.db"
    config = _alembic_config(db_path)
    command.upgrade(config, "head")
    command.downgrade(config, "0001_init")
    database = Database.from_path(str(db_path))
    try:
        columns = {c["name"] for c in inspect(database.engine).get_columns("goals")}
        assert "is_deleted" not in columns
    finally:
        database.dispose()
