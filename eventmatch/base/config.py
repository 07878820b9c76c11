import logging
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseSettings):
    # === App Metadata ===
    PROJECT_NAME: str = "EventMatch"
    ENVIRONMENT: str = Field("dev")  # dev, staging, prod
    DEBUG_MODE: bool = Field(True)
    API_VERSION: str = "v1"

    # === Security ===
    API_KEY: str = Field("super-secret-key")
    ENABLE_API_KEY_SECURITY: bool = Field(True)
    CRON_SECRET: str = Field("")  # empty = reminders endpoint is open

    # === Logging ===
    LOG_LEVEL: str = Field("INFO")
    ENABLE_JSON_LOGS: bool = Field(False)

    @property
    def LOG_LEVEL_NUMERIC(self) -> int:
        return getattr(logging, self.LOG_LEVEL.upper(), logging.INFO)

    # === Database (PostgreSQL or SQLite fallback) ===
    DB_HOST: str = Field("localhost")
    DB_PORT: int = Field(5432)
    DB_USER: str = Field("postgres")
    DB_PASSWORD: str = Field("postgres")
    DB_NAME: str = Field("eventmatch_db")
    AUTO_CREATE_TABLES: bool = Field(True)

    @property
    def DATABASE_URL(self) -> str:
        if self.DB_HOST == "sqlite":
            return "sqlite:///./eventmatch.db"
        return f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    # === Scheduling ===
    DEFAULT_MEETING_DURATION_MINUTES: int = Field(30, ge=1)
    DEFAULT_BREAK_MINUTES: int = Field(5, ge=0)

    # === Reminders (minutes before start; each window is REMINDER_WINDOW_MINUTES wide) ===
    REMINDER_SOON_MINUTES: int = Field(15)
    REMINDER_UPCOMING_MINUTES: int = Field(60)
    REMINDER_WINDOW_MINUTES: int = Field(15)

    # === Environment Shortcuts ===
    @property
    def IS_PROD(self) -> bool:
        return self.ENVIRONMENT.lower() == "prod"

    @property
    def IS_DEV(self) -> bool:
        return self.ENVIRONMENT.lower() == "dev"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> AppConfig:
    return AppConfig()


# Global config instance
settings = get_settings()
