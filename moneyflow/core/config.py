from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path

# SQLite file next to the package so the CWD does not change which DB is used
_DEFAULT_DB_PATH = Path(__file__).resolve().parents[2] / "moneyflow.sqlite3"


class Settings(BaseSettings):
    APP_NAME: str = "moneyflow"
    ENV: str = "dev"

    DATABASE_URL: str = f"sqlite:///{_DEFAULT_DB_PATH}"

    CORS_ORIGINS: list[str] = ["*"]
    LOG_LEVEL: str = "INFO"

    # Recurring transaction materializer (runs at 00:00 UTC by default)
    SCHEDULER_ENABLED: bool = False
    MATERIALIZE_CRON_HOUR: int = 0
    MATERIALIZE_CRON_MINUTE: int = 0
    MATERIALIZE_ON_STARTUP: bool = False

    model_config = SettingsConfigDict(env_file=(".env",), env_prefix="MONEYFLOW_", case_sensitive=False)


settings = Settings()
