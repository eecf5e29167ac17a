import asyncio
from datetime import datetime
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from minimaltodo.api.app import create_app
from minimaltodo.api.routes_health import health
from minimaltodo.config import Settings
from minimaltodo.container import build_container
from minimaltodo.core.logical_date import logical_date
from minimaltodo.db.models import TargetType


@pytest.fixture()
def container(tmp_path: Path):
    settings = Settings(
        sqlite_path=str(tmp_path / "api.db"),
        preferences_path=str(tmp_path / "preferences.json"),
        log_path=str(tmp_path / "logs" / "api.log"),
        run_migrations=False,
    )
    built = build_container(settings, create_schema=True)
    yield built
    built.close()


@pytest.fixture()
def client(container) -> TestClient:
    return TestClient(create_app(container))


def test_health_ok_payload(client: TestClient) -> None:
    assert health() == {"ok": True}
    assert client.get("/health").json() == {"ok": True}


def test_widget_goals_is_plain_text(client: TestClient, container) -> None:
    goal_id = asyncio.run(container.goals.add_goal("Read"))
    res = client.get("/widget/goals")
    assert res.status_code == 200
    assert res.headers["content-type"].startswith("text/plain")
    assert res.text == f"{goal_id}|Read|true|1.0|0.0|false"


def test_cycle_goal_route_returns_snapshot(client: TestClient, container) -> None:
    goal_id = asyncio.run(container.goals.add_goal("Water", TargetType.QUANTITY, 2))
    res = client.post(f"/widget/goals/{goal_id}/cycle")
    assert res.status_code == 200
    assert res.text == f"{goal_id}|Water|false|2.0|1.0|false"

    today = logical_date(datetime.now().astimezone(), container.settings_store.get())
    log = asyncio.run(container.goals.get_log(goal_id, today))
    assert log is not None and log.value == 1.0


def test_toggle_task_route(client: TestClient, container) -> None:
    task_id = asyncio.run(container.tasks.add_task("Buy milk"))
    assert client.get("/widget/tasks").text == f"{task_id}|Buy milk|"
    res = client.post(f"/widget/tasks/{task_id}/toggle")
    assert res.status_code == 200
    assert res.text == ""


def test_unknown_ids_map_to_404(client: TestClient) -> None:
    assert client.post("/widget/goals/404/cycle").status_code == 404
    res = client.post("/widget/tasks/404/toggle")
    assert res.status_code == 404
    assert "Task not found" in res.json()["detail"]


def test_reset_hour_round_trip(client: TestClient, container) -> None:
    assert client.get("/settings/reset-hour").json() == {"reset_hour": 0}
    res = client.put("/settings/reset-hour", json={"reset_hour": 4})
    assert res.status_code == 200
    assert res.json() == {"reset_hour": 4}
    assert container.settings_store.get() == 4


@pytest.mark.parametrize("bad", [24, -1, "3", None])
def test_invalid_reset_hour_is_422(client: TestClient, bad) -> None:
    res = client.put("/settings/reset-hour", json={"reset_hour": bad})
    assert res.status_code == 422
    assert client.get("/settings/reset-hour").json() == {"reset_hour": 0}
