from typing import Any

from fastapi import APIRouter, Depends
from loguru import logger
from pydantic import BaseModel

from minimaltodo.api.deps import get_container
from minimaltodo.container import AppContainer

router = APIRouter(prefix="/settings", tags=["settings"])


class ResetHourBody(BaseModel):
    # Range checks belong to the settings store; keep the raw value here.
    reset_hour: Any


@router.get("/reset-hour")
def get_reset_hour(container: AppContainer = Depends(get_container)) -> dict:
    return {"reset_hour": container.settings_store.get()}


@router.put("/reset-hour")
async def put_reset_hour(body: ResetHourBody, container: AppContainer = Depends(get_container)) -> dict:
    container.settings_store.set(body.reset_hour)
    logger.info("api_reset_hour_set value={}", body.reset_hour)
    await container.widgets.refresh_goals()
    return {"reset_hour": container.settings_store.get()}
