from pathlib import Path

import uvicorn
from dotenv import find_dotenv, load_dotenv
from loguru import logger

from minimaltodo.logging_setup import setup_logging


def _load_env() -> None:
    env_path = find_dotenv(usecwd=True)
    if not env_path:
        candidate = Path(__file__).resolve().parents[1] / ".env"
        if candidate.exists():
            env_path = str(candidate)
    if env_path:
        logger.info("Loaded .env from {}", env_path)
        load_dotenv(env_path, override=True)
    else:
        logger.warning("No .env found")


def _run_migrations(sqlite_path: str) -> None:
    from alembic import command
    from alembic.config import Config

    from minimaltodo.db.session import build_database_url

    config_path = Path(__file__).resolve().parents[1] / "alembic.ini"
    alembic_cfg = Config(str(config_path))
    alembic_cfg.set_main_option("sqlalchemy.url", build_database_url(sqlite_path))
    command.upgrade(alembic_cfg, "head")
    logger.info("migrations_applied db={}", sqlite_path)


def main() -> None:
    _load_env()

    # Settings read the environment, so they are built after .env is loaded.
    from minimaltodo.api.app import create_app
    from minimaltodo.config import Settings
    from minimaltodo.container import build_container

    settings = Settings()
    setup_logging(settings)
    if settings.run_migrations:
        _run_migrations(settings.sqlite_path)
    container = build_container(settings, create_schema=not settings.run_migrations)
    app = create_app(container)
    uvicorn.run(app, host=settings.api_host, port=settings.api_port, reload=False)


if __name__ == "__main__":
    main()
