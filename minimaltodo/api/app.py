from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger

from minimaltodo.api.routes_health import router as health_router
from minimaltodo.api.routes_settings import router as settings_router
from minimaltodo.api.routes_widget import router as widget_router
from minimaltodo.container import AppContainer
from minimaltodo.errors import InvalidConfiguration, NotFound, ValidationError


async def _not_found(request: Request, exc: NotFound) -> JSONResponse:
    logger.warning("api_not_found path={} kind={} id={}", request.url.path, exc.kind, exc.ident)
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def _invalid(request: Request, exc: Exception) -> JSONResponse:
    logger.warning("api_invalid path={} error={}", request.url.path, exc)
    return JSONResponse(status_code=422, content={"detail": str(exc)})


def create_app(container: AppContainer) -> FastAPI:
    app = FastAPI(title="minimaltodo")
    app.state.container = container

    app.include_router(health_router)
    app.include_router(widget_router)
    app.include_router(settings_router)

    app.add_exception_handler(NotFound, _not_found)
    app.add_exception_handler(ValidationError, _invalid)
    app.add_exception_handler(InvalidConfiguration, _invalid)

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        container.close()

    return app


def app_factory() -> FastAPI:
    """Entry for `uvicorn --factory minimaltodo.api.app:app_factory`."""
    from minimaltodo.config import settings
    from minimaltodo.container import build_container

    return create_app(build_container(settings, create_schema=True))
