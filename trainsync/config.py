# trainsync/config.py
from __future__ import annotations

from datetime import date

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # --- Parsing ---
    # Monday of the placeholder week used to date weekday-led (régime) rows.
    REFERENCE_WEEK_START: date = date(2025, 1, 6)
    MIN_COLUMNS: int = 13

    # --- Service defaults ---
    DEFAULT_DRIVER: str = "Blue"
    DEFAULT_TRAIN_MANAGER: str = "Red"

    # --- Imports ---
    IMPORT_COPY_TO_SYSTEM_B: bool = True
    IMPORT_COPY_TO_SYSTEM_C: bool = True
    AUTO_ROLLOUT: bool = True

    # --- Logging ---
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )


settings = Settings()
