"""
Future Self Letters — Centralized configuration.

Loads all settings from .env and validates them.
This module is the foundation for every other module in the project.
"""

from __future__ import annotations

import os
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (two levels up from futureself/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # SQLite
    DATABASE_PATH: str = "data/letters.db"

    # Logging
    LOG_LEVEL: str = "INFO"

    # Day boundary used for activity streaks
    TIMEZONE: str = "UTC"

    # Stats aggregation (letters written, reflections, streaks)
    STATS_ENABLED: bool = True

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def parse_log_level(cls, v: str) -> str:
        return (v or "INFO").strip().upper()

    @field_validator("TIMEZONE")
    @classmethod
    def check_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown TIMEZONE: {v!r}") from exc
        return v

    @field_validator("STATS_ENABLED", mode="before")
    @classmethod
    def parse_flag(cls, v: str | bool) -> bool:
        if isinstance(v, bool):
            return v
        return str(v).strip().lower() not in ("0", "false", "no", "off", "")


def _load_settings() -> Settings:
    """Load settings from environment."""
    return Settings(
        DATABASE_PATH=os.getenv("DATABASE_PATH", "data/letters.db"),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
        TIMEZONE=os.getenv("TIMEZONE", "UTC"),
        STATS_ENABLED=os.getenv("STATS_ENABLED", "true"),
    )


# Singleton — imported by all other modules as:
#   from futureself.config import settings
settings = _load_settings()
