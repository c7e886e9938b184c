"""Application configuration via Pydantic Settings.

Reads environment variables (and optional .env file) and validates them
at startup. Use ``get_settings()`` to obtain a cached singleton.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Validated application settings sourced from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # --- Required --------------------------------------------------------
    DATABASE_URL: str

    # --- Optional (with defaults) ----------------------------------------
    LOG_LEVEL: str = "INFO"
    PORT: int = 8000
    RUN_MIGRATIONS: bool = True

    # Shared secret for /tasks/* endpoints (empty = task endpoints disabled).
    TASKS_SECRET: str = ""

    # Fasting summaries: how many days are recomputed and how long rows live.
    FASTING_WINDOW_DAYS: int = 14
    FASTING_RETENTION_DAYS: int = 14

    # Safety cap on the daily deficit a weight goal may ask for (kcal/day).
    MAX_BALANCE_DAILY_DEFICIT: int = 1000

    # --- Validators ------------------------------------------------------
    @property
    def tasks_enabled(self) -> bool:
        """True when TASKS_SECRET is configured."""
        return bool(self.TASKS_SECRET)

    @field_validator("TASKS_SECRET")
    @classmethod
    def _validate_tasks_secret(cls, v: str) -> str:
        if not v:  # empty = task endpoints disabled
            return v
        if len(v) < 8:
            raise ValueError("TASKS_SECRET must be at least 8 characters")
        return v

    @field_validator(
        "PORT",
        "FASTING_WINDOW_DAYS",
        "FASTING_RETENTION_DAYS",
        "MAX_BALANCE_DAILY_DEFICIT",
    )
    @classmethod
    def _validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Value must be positive")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def _validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown LOG_LEVEL: {v}")
        return level


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings singleton."""
    return Settings()  # type: ignore[call-arg]
