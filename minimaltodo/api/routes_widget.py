from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from minimaltodo.api.deps import get_container
from minimaltodo.container import AppContainer

router = APIRouter(prefix="/widget", tags=["widget"])


@router.get("/goals", response_class=PlainTextResponse)
async def widget_goals(container: AppContainer = Depends(get_container)) -> str:
    return await container.widgets.goals_snapshot()


@router.get("/tasks", response_class=PlainTextResponse)
async def widget_tasks(container: AppContainer = Depends(get_container)) -> str:
    return await container.widgets.tasks_snapshot()


@router.post("/goals/{goal_id}/cycle", response_class=PlainTextResponse)
async def cycle_goal(goal_id: int, container: AppContainer = Depends(get_container)) -> str:
    return await container.widgets.cycle_goal_progress(goal_id)


@router.post("/tasks/{task_id}/toggle", response_class=PlainTextResponse)
async def toggle_task(task_id: int, container: AppContainer = Depends(get_container)) -> str:
    return await container.widgets.toggle_task_completion(task_id)
