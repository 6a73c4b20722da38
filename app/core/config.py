# app/core/config.py
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Global application configuration.

    Values are loaded from environment variables at runtime.

    These settings drive:
    - DB connection
    - Internal API key
    - Recurring appointment limits
    - Read-model cache lifetime
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    APP_NAME: str = "Clinic Scheduler"
    APP_ENV: str = Field("local", description="Environment name: local/test/dev/stage/prod")

    LOG_LEVEL: str = Field(
        default="INFO",
        description="Root log level for the application loggers.",
    )

    DB_URL: str = Field(
        "sqlite+aiosqlite:///./clinic.db",
        description="SQLAlchemy-compatible database URL",
    )

    INTERNAL_API_KEY: str | None = Field(
        default=None,
        description="API key required for hitting /internal endpoints",
    )

    # --- Recurring appointments ---
    MAX_RECURRENCE_OCCURRENCES: int = Field(
        default=35,
        description="Upper bound of appointments a single recurring request may create.",
    )
    MAX_RECURRENCE_SPAN_DAYS: int = Field(
        default=365,
        description="Maximum number of days between the first date and the recurrence end date.",
    )
    RECURRENCE_BATCH_TIMEOUT_SECONDS: float = Field(
        default=30.0,
        description=(
            "Server-side timeout for a materialize/update/delete batch. "
            "A batch exceeding it is rolled back entirely."
        ),
    )

    # --- Read models ---
    READ_MODEL_CACHE_TTL_SECONDS: float = Field(
        default=300.0,
        description="Seconds a cached read model (e.g. financial summary) stays fresh.",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Cached accessor for application settings.

    Using LRU cache ensures settings are read and validated only once,
    while still being easily importable across the app.
    """
    return Settings()
