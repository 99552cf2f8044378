"""Letter store port — abstract interface for letter persistence.

Core modules depend on this protocol, never on a specific database.
Goals and reflections are only reachable through their parent letter.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from futureself.core.errors import LetterError
from futureself.data.models import Letter


class PersistenceError(LetterError):
    """Raised when any store operation fails unexpectedly."""

    code = "INTERNAL_ERROR"


class LetterStore(Protocol):
    """Abstract letter repository used by the lifecycle engine."""

    def find_by_id(self, letter_id: str) -> Letter | None: ...

    def find_by_user(self, user_id: str) -> list[Letter]: ...

    def create(self, data: dict) -> Letter: ...

    def update(self, letter_id: str, patch: dict) -> Letter | None: ...

    def delete(self, letter_id: str) -> bool: ...

    def add_goal(
        self,
        letter_id: str,
        text: str,
        carried_forward_from: str | None = None,
    ) -> Letter | None: ...

    def update_goal(
        self, letter_id: str, goal_id: str, patch: dict
    ) -> Letter | None: ...

    def add_reflection(
        self, letter_id: str, text: str, date: datetime | None = None
    ) -> Letter | None: ...

    def remove_reflection(
        self, letter_id: str, reflection_id: str
    ) -> Letter | None: ...
