from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    sqlite_path: str = "data/minimaltodo.db"
    preferences_path: str = "data/preferences.json"
    log_path: str = "logs/minimaltodo.log"
    log_level: str = "INFO"
    timezone: str | None = None
    api_host: str = "127.0.0.1"
    api_port: int = 8000
    run_migrations: bool = True


settings = Settings()
