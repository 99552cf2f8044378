"""
Future Self Letters — Letter and User Database.

Letters persist in SQLite together with their goals and reflections.
Goals and reflections are child rows keyed by (letter_id, id): they can only
be read or changed through their parent letter, and go away with it.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Iterator

from futureself.data.models import (
    Goal,
    GoalStatus,
    Letter,
    Reflection,
    User,
    UserStats,
)
from futureself.ports.letter_port import PersistenceError

logger = logging.getLogger(__name__)

# Columns that update() and update_goal() may write
_LETTER_COLUMNS = (
    "title", "content", "mood", "weather", "temperature", "current_song",
    "top_headline", "location", "delivery_interval", "delivered_at",
    "is_delivered",
)
_GOAL_COLUMNS = (
    "text", "status", "reflection", "carried_forward_to",
    "carried_forward_from", "status_updated_at",
)
_STATS_COLUMNS = {
    "total_letters": "INTEGER NOT NULL DEFAULT 0",
    "total_reflections": "INTEGER NOT NULL DEFAULT 0",
    "goals_accomplished": "INTEGER NOT NULL DEFAULT 0",
    "current_streak": "INTEGER NOT NULL DEFAULT 0",
    "longest_streak": "INTEGER NOT NULL DEFAULT 0",
    "last_activity_date": "TEXT",
}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _to_iso(value: datetime | None) -> str | None:
    """Serialize an instant as a fixed-width UTC ISO string (sortable)."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _from_iso(value: str | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromisoformat(value)


def _new_id() -> str:
    return uuid.uuid4().hex


def _to_column(name: str, value: object) -> object:
    if isinstance(value, datetime):
        return _to_iso(value)
    if isinstance(value, GoalStatus):
        return value.value
    if name == "is_delivered":
        return int(bool(value))
    return value


class _SQLiteStore:
    """Connection handling shared by the letter and user stores."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from futureself.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """One atomic unit: commit on success, roll back on any error."""
        conn = self._connect()
        try:
            with conn:
                yield conn
        except sqlite3.Error as exc:
            logger.error("Database error on %s: %s", self._db_path, exc)
            raise PersistenceError(f"Database error: {exc}") from exc
        finally:
            conn.close()

    def _init_db(self) -> None:
        raise NotImplementedError


class LetterDB(_SQLiteStore):
    """SQLite-backed letter repository (implements LetterStore)."""

    def _init_db(self) -> None:
        """Create the letter tables if they don't exist."""
        with self._transaction() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS letters (
                    id                 TEXT    PRIMARY KEY,
                    user_id            TEXT    NOT NULL,
                    title              TEXT    NOT NULL DEFAULT 'Untitled',
                    content            TEXT    NOT NULL,
                    mood               TEXT,
                    weather            TEXT,
                    temperature        REAL,
                    current_song       TEXT,
                    top_headline       TEXT,
                    location           TEXT,
                    delivery_interval  TEXT    NOT NULL,
                    delivered_at       TEXT    NOT NULL,
                    is_delivered       INTEGER NOT NULL DEFAULT 0,
                    created_at         TEXT    NOT NULL,
                    updated_at         TEXT    NOT NULL
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_letters_user ON letters (user_id)"
            )
            conn.execute("""
                CREATE TABLE IF NOT EXISTS goals (
                    letter_id             TEXT    NOT NULL,
                    id                    TEXT    NOT NULL,
                    position              INTEGER NOT NULL,
                    text                  TEXT    NOT NULL,
                    status                TEXT    NOT NULL DEFAULT 'pending',
                    reflection            TEXT,
                    carried_forward_to    TEXT,
                    carried_forward_from  TEXT,
                    status_updated_at     TEXT,
                    PRIMARY KEY (letter_id, id)
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS reflections (
                    letter_id  TEXT    NOT NULL,
                    id         TEXT    NOT NULL,
                    position   INTEGER NOT NULL,
                    text       TEXT    NOT NULL,
                    date       TEXT    NOT NULL,
                    PRIMARY KEY (letter_id, id)
                )
            """)
        logger.debug("Letter tables initialized at %s", self._db_path)

    # ------------------------------------------------------------------
    # Row mapping
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_goal(row: sqlite3.Row) -> Goal:
        return Goal(
            id=row["id"],
            text=row["text"],
            status=GoalStatus(row["status"]),
            reflection=row["reflection"],
            carried_forward_to=row["carried_forward_to"],
            carried_forward_from=row["carried_forward_from"],
            status_updated_at=_from_iso(row["status_updated_at"]),
        )

    @staticmethod
    def _row_to_reflection(row: sqlite3.Row) -> Reflection:
        return Reflection(
            id=row["id"],
            text=row["text"],
            date=_from_iso(row["date"]),
        )

    def _row_to_letter(self, conn: sqlite3.Connection, row: sqlite3.Row) -> Letter:
        goals = conn.execute(
            "SELECT * FROM goals WHERE letter_id = ? ORDER BY position",
            (row["id"],),
        ).fetchall()
        reflections = conn.execute(
            "SELECT * FROM reflections WHERE letter_id = ? ORDER BY position",
            (row["id"],),
        ).fetchall()
        return Letter(
            id=row["id"],
            user_id=row["user_id"],
            title=row["title"],
            content=row["content"],
            mood=row["mood"],
            weather=row["weather"],
            temperature=row["temperature"],
            current_song=row["current_song"],
            top_headline=row["top_headline"],
            location=row["location"],
            delivery_interval=row["delivery_interval"],
            delivered_at=_from_iso(row["delivered_at"]),
            is_delivered=bool(row["is_delivered"]),
            goals=[self._row_to_goal(g) for g in goals],
            reflections=[self._row_to_reflection(r) for r in reflections],
            created_at=_from_iso(row["created_at"]),
            updated_at=_from_iso(row["updated_at"]),
        )

    def _load(self, conn: sqlite3.Connection, letter_id: str) -> Letter | None:
        row = conn.execute(
            "SELECT * FROM letters WHERE id = ?", (letter_id,)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_letter(conn, row)

    @staticmethod
    def _exists(conn: sqlite3.Connection, letter_id: str) -> bool:
        row = conn.execute(
            "SELECT 1 FROM letters WHERE id = ?", (letter_id,)
        ).fetchone()
        return row is not None

    @staticmethod
    def _touch(conn: sqlite3.Connection, letter_id: str) -> None:
        conn.execute(
            "UPDATE letters SET updated_at = ? WHERE id = ?",
            (_to_iso(_utc_now()), letter_id),
        )

    @staticmethod
    def _next_position(conn: sqlite3.Connection, table: str, letter_id: str) -> int:
        row = conn.execute(
            f"SELECT COALESCE(MAX(position), -1) + 1 FROM {table} WHERE letter_id = ?",
            (letter_id,),
        ).fetchone()
        return row[0]

    def _insert_goal(
        self,
        conn: sqlite3.Connection,
        letter_id: str,
        text: str,
        carried_forward_from: str | None = None,
    ) -> str:
        goal_id = _new_id()
        conn.execute(
            """
            INSERT INTO goals
                (letter_id, id, position, text, status, carried_forward_from)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                letter_id, goal_id, self._next_position(conn, "goals", letter_id),
                text, GoalStatus.PENDING.value, carried_forward_from,
            ),
        )
        return goal_id

    # ------------------------------------------------------------------
    # Letters
    # ------------------------------------------------------------------

    def find_by_id(self, letter_id: str) -> Letter | None:
        """Fetch a single letter with its goals and reflections."""
        with self._transaction() as conn:
            return self._load(conn, letter_id)

    def find_by_user(self, user_id: str) -> list[Letter]:
        """Return all letters of a user, newest first."""
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM letters WHERE user_id = ? "
                "ORDER BY created_at DESC, rowid DESC",
                (user_id,),
            ).fetchall()
            return [self._row_to_letter(conn, r) for r in rows]

    def create(self, data: dict) -> Letter:
        """Insert a new letter. ``data["goals"]`` may list initial goal texts."""
        letter_id = _new_id()
        now = _to_iso(_utc_now())

        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO letters
                    (id, user_id, title, content, mood, weather, temperature,
                     current_song, top_headline, location, delivery_interval,
                     delivered_at, is_delivered, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 0, ?, ?)
                """,
                (
                    letter_id,
                    data["user_id"],
                    data.get("title") or "Untitled",
                    data["content"],
                    data.get("mood"),
                    data.get("weather"),
                    data.get("temperature"),
                    data.get("current_song"),
                    data.get("top_headline"),
                    data.get("location"),
                    data["delivery_interval"],
                    _to_iso(data["delivered_at"]),
                    now,
                    now,
                ),
            )
            for text in data.get("goals") or []:
                self._insert_goal(conn, letter_id, text)
            letter = self._load(conn, letter_id)

        logger.info(
            "Letter added: %s for user %s, delivery %s",
            letter_id, data["user_id"], letter.delivered_at.isoformat(),
        )
        return letter

    def update(self, letter_id: str, patch: dict) -> Letter | None:
        """Apply a partial update to a letter. Returns None if it doesn't exist."""
        unknown = set(patch) - set(_LETTER_COLUMNS)
        if unknown:
            raise ValueError(f"Cannot update letter fields: {sorted(unknown)}")

        with self._transaction() as conn:
            if patch:
                assignments = ", ".join(f"{name} = ?" for name in patch)
                params = [_to_column(name, value) for name, value in patch.items()]
                params += [_to_iso(_utc_now()), letter_id]
                conn.execute(
                    f"UPDATE letters SET {assignments}, updated_at = ? WHERE id = ?",
                    params,
                )
            return self._load(conn, letter_id)

    def delete(self, letter_id: str) -> bool:
        """Permanently delete a letter together with its goals and reflections."""
        with self._transaction() as conn:
            conn.execute("DELETE FROM goals WHERE letter_id = ?", (letter_id,))
            conn.execute("DELETE FROM reflections WHERE letter_id = ?", (letter_id,))
            cursor = conn.execute("DELETE FROM letters WHERE id = ?", (letter_id,))
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Letter %s deleted", letter_id)
        return deleted

    # ------------------------------------------------------------------
    # Goals
    # ------------------------------------------------------------------

    def add_goal(
        self,
        letter_id: str,
        text: str,
        carried_forward_from: str | None = None,
    ) -> Letter | None:
        """Append a pending goal to a letter. Returns None if the letter is gone."""
        with self._transaction() as conn:
            if not self._exists(conn, letter_id):
                return None
            goal_id = self._insert_goal(conn, letter_id, text, carried_forward_from)
            self._touch(conn, letter_id)
            letter = self._load(conn, letter_id)
        logger.info("Goal %s added to letter %s", goal_id, letter_id)
        return letter

    def update_goal(self, letter_id: str, goal_id: str, patch: dict) -> Letter | None:
        """Apply a partial update to one goal. Returns None if it doesn't exist."""
        unknown = set(patch) - set(_GOAL_COLUMNS)
        if unknown:
            raise ValueError(f"Cannot update goal fields: {sorted(unknown)}")

        with self._transaction() as conn:
            if patch:
                assignments = ", ".join(f"{name} = ?" for name in patch)
                params = [_to_column(name, value) for name, value in patch.items()]
                cursor = conn.execute(
                    f"UPDATE goals SET {assignments} WHERE letter_id = ? AND id = ?",
                    params + [letter_id, goal_id],
                )
                if cursor.rowcount == 0:
                    return None
                self._touch(conn, letter_id)
            elif conn.execute(
                "SELECT 1 FROM goals WHERE letter_id = ? AND id = ?",
                (letter_id, goal_id),
            ).fetchone() is None:
                return None
            return self._load(conn, letter_id)

    # ------------------------------------------------------------------
    # Reflections
    # ------------------------------------------------------------------

    def add_reflection(
        self, letter_id: str, text: str, date: datetime | None = None,
    ) -> Letter | None:
        """Append a reflection to a letter. Returns None if the letter is gone."""
        with self._transaction() as conn:
            if not self._exists(conn, letter_id):
                return None
            reflection_id = _new_id()
            conn.execute(
                "INSERT INTO reflections (letter_id, id, position, text, date) "
                "VALUES (?, ?, ?, ?, ?)",
                (
                    letter_id, reflection_id,
                    self._next_position(conn, "reflections", letter_id),
                    text, _to_iso(date or _utc_now()),
                ),
            )
            self._touch(conn, letter_id)
            letter = self._load(conn, letter_id)
        logger.info("Reflection %s added to letter %s", reflection_id, letter_id)
        return letter

    def remove_reflection(self, letter_id: str, reflection_id: str) -> Letter | None:
        """Delete a reflection. A missing reflection id is not an error."""
        with self._transaction() as conn:
            if not self._exists(conn, letter_id):
                return None
            cursor = conn.execute(
                "DELETE FROM reflections WHERE letter_id = ? AND id = ?",
                (letter_id, reflection_id),
            )
            if cursor.rowcount > 0:
                self._touch(conn, letter_id)
                logger.info(
                    "Reflection %s removed from letter %s", reflection_id, letter_id,
                )
            return self._load(conn, letter_id)


class UserDB(_SQLiteStore):
    """SQLite-backed storage for users and their activity stats."""

    def _init_db(self) -> None:
        with self._transaction() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    id          TEXT PRIMARY KEY,
                    username    TEXT NOT NULL,
                    created_at  TEXT NOT NULL
                )
            """)
            # Migrate existing DBs: add stats columns if missing
            existing_cols = {
                row[1] for row in conn.execute("PRAGMA table_info(users)").fetchall()
            }
            for name, ddl in _STATS_COLUMNS.items():
                if name not in existing_cols:
                    conn.execute(f"ALTER TABLE users ADD COLUMN {name} {ddl}")
        logger.debug("Users table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_stats(row: sqlite3.Row) -> UserStats:
        last = row["last_activity_date"]
        return UserStats(
            total_letters=row["total_letters"],
            total_reflections=row["total_reflections"],
            goals_accomplished=row["goals_accomplished"],
            current_streak=row["current_streak"],
            longest_streak=row["longest_streak"],
            last_activity_date=date.fromisoformat(last) if last else None,
        )

    def _row_to_user(self, row: sqlite3.Row) -> User:
        return User(
            id=row["id"],
            username=row["username"],
            stats=self._row_to_stats(row),
            created_at=row["created_at"],
        )

    def add_user(self, username: str, user_id: str | None = None) -> User:
        """Register a new user with zeroed stats."""
        user_id = user_id or _new_id()
        now = _to_iso(_utc_now())
        with self._transaction() as conn:
            conn.execute(
                "INSERT INTO users (id, username, created_at) VALUES (?, ?, ?)",
                (user_id, username, now),
            )
        logger.info("User registered: %s '%s'", user_id, username)
        return User(id=user_id, username=username, created_at=now)

    def get_user(self, user_id: str) -> User | None:
        """Fetch a user by ID."""
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE id = ?", (user_id,)
            ).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def list_users(self) -> list[User]:
        """Return all registered users."""
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM users ORDER BY created_at"
            ).fetchall()
        return [self._row_to_user(r) for r in rows]

    def get_stats(self, user_id: str) -> UserStats | None:
        """Fetch a user's stats record."""
        user = self.get_user(user_id)
        return user.stats if user else None

    def save_stats(self, user_id: str, stats: UserStats) -> bool:
        """Overwrite a user's stats record. Returns False if the user is unknown."""
        last = stats.last_activity_date.isoformat() if stats.last_activity_date else None
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE users SET
                    total_letters = ?, total_reflections = ?,
                    goals_accomplished = ?, current_streak = ?,
                    longest_streak = ?, last_activity_date = ?
                WHERE id = ?
                """,
                (
                    stats.total_letters, stats.total_reflections,
                    stats.goals_accomplished, stats.current_streak,
                    stats.longest_streak, last, user_id,
                ),
            )
            saved = cursor.rowcount > 0
        return saved
