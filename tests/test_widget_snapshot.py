import asyncio
from datetime import datetime, timezone

from minimaltodo.core.goal_repository import GoalRepository
from minimaltodo.core.task_repository import TaskRepository
from minimaltodo.db.models import TargetType
from minimaltodo.db.session import Database
from minimaltodo.widgets.snapshot import (
    GoalRow,
    TaskRow,
    build_goal_rows,
    build_task_rows,
    format_goal_rows,
    format_task_rows,
    parse_goal_rows,
    parse_task_rows,
)

DAY = "2026-04-01"


def test_goal_rows_merge_todays_logs(database: Database, goals: GoalRepository) -> None:
    async def scenario():
        read = await goals.add_goal("Read")
        water = await goals.add_goal("Water", TargetType.QUANTITY, 3, "glasses")
        timer = await goals.add_goal("Meditate", TargetType.TIMER, 10)
        hidden = await goals.add_goal("Hidden")
        await goals.toggle_completion(read, DAY, 0, 1)
        await goals.update_progress(water, DAY, 2, 3)
        await goals.update_progress(water, "2026-03-31", 3, 3)
        await goals.delete_goal(await goals.get_goal(hidden))
        return read, water, timer

    read, water, timer = asyncio.run(scenario())
    with database.session() as session:
        rows = build_goal_rows(session, DAY)

    assert rows == [
        GoalRow(id=read, name="Read", is_binary=True, target_value=1.0, current_value=1.0, is_completed=True),
        GoalRow(id=water, name="Water", is_binary=False, target_value=3.0, current_value=2.0, is_completed=False),
        GoalRow(id=timer, name="Meditate", is_binary=True, target_value=10.0, current_value=0.0, is_completed=False),
    ]
    assert format_goal_rows(rows).splitlines() == [
        f"{read}|Read|true|1.0|1.0|true",
        f"{water}|Water|false|3.0|2.0|false",
        f"{timer}|Meditate|true|10.0|0.0|false",
    ]


def test_task_rows_cover_active_tasks_only(database: Database, tasks: TaskRepository) -> None:
    due = datetime(2026, 4, 2, 12, 0, tzinfo=timezone.utc)

    async def scenario():
        dated = await tasks.add_task("Dentist", due)
        plain = await tasks.add_task("Groceries")
        done = await tasks.add_task("Done already")
        await tasks.complete_task(await tasks.get_task(done))
        return dated, plain

    dated, plain = asyncio.run(scenario())
    with database.session() as session:
        rows = build_task_rows(session)

    millis = int(due.timestamp() * 1000)
    assert rows == [TaskRow(id=dated, title="Dentist", due_date=millis), TaskRow(id=plain, title="Groceries", due_date=None)]
    assert format_task_rows(rows) == f"{dated}|Dentist|{millis}\n{plain}|Groceries|"


def test_separator_and_newlines_are_flattened() -> None:
    payload = format_task_rows([TaskRow(id=1, title="a|b\nc", due_date=None)])
    assert payload == "1|a b c|"
    assert parse_task_rows(payload) == [TaskRow(id=1, title="a b c", due_date=None)]


def test_empty_snapshots_are_empty_strings() -> None:
    assert format_goal_rows([]) == ""
    assert format_task_rows([]) == ""
    assert parse_goal_rows("") == []


def test_parsers_skip_malformed_lines() -> None:
    goals_payload = "7|Read|true|1.0|0.0|false\nbroken line\nx|Bad|true|1.0|0.0|false"
    assert parse_goal_rows(goals_payload) == [
        GoalRow(id=7, name="Read", is_binary=True, target_value=1.0, current_value=0.0, is_completed=False)
    ]
    assert parse_task_rows("3|Call|\n4|Too|many|parts") == [TaskRow(id=3, title="Call", due_date=None)]
