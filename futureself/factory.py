"""Service factory — wires the lifecycle engine to its stores based on config."""

from __future__ import annotations

from futureself.config import settings
from futureself.core.letter_service import LetterService
from futureself.core.stats import StatsAggregator
from futureself.data.db import LetterDB, UserDB


def create_letter_service(db_path: str | None = None) -> LetterService:
    """Return a LetterService backed by SQLite at DATABASE_PATH.

    Args:
        db_path: Overrides DATABASE_PATH (letters and users share the file).
    """
    path = db_path or settings.DATABASE_PATH
    stats = StatsAggregator(UserDB(db_path=path)) if settings.STATS_ENABLED else None
    return LetterService(LetterDB(db_path=path), stats=stats)
