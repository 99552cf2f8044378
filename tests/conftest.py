"""Shared test fixtures and configuration.

Sets environment variables before any futureself import so the settings
singleton is predictable, and provides temp databases plus a controllable
clock for the lifecycle engine.
"""

import os

# Patch env vars BEFORE any futureself imports
os.environ.setdefault("DATABASE_PATH", ":memory:")
os.environ.setdefault("LOG_LEVEL", "INFO")
os.environ.setdefault("TIMEZONE", "UTC")
os.environ.setdefault("STATS_ENABLED", "true")

from datetime import datetime, timedelta, timezone

import pytest


class FakeClock:
    """Callable returning a fixed aware UTC instant that tests can move."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path."""
    return str(tmp_path / "test_letters.db")


@pytest.fixture
def letter_db(tmp_db_path):
    """Return a LetterDB instance backed by a temp file."""
    from futureself.data.db import LetterDB
    return LetterDB(db_path=tmp_db_path)


@pytest.fixture
def user_db(tmp_db_path):
    """Return a UserDB instance sharing the letters' temp file."""
    from futureself.data.db import UserDB
    return UserDB(db_path=tmp_db_path)


@pytest.fixture
def users(user_db):
    """Register the two users most tests act as."""
    user_db.add_user("Alice", user_id="alice")
    user_db.add_user("Bob", user_id="bob")
    return user_db


@pytest.fixture
def aggregator(users, clock):
    from futureself.core.stats import StatsAggregator
    return StatsAggregator(users, today=lambda: clock().date())


@pytest.fixture
def service(letter_db, aggregator, clock):
    """LetterService wired to temp stores, real stats and the fake clock."""
    from futureself.core.letter_service import LetterService
    return LetterService(letter_db, stats=aggregator, now=clock)
