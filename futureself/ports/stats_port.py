"""Stats port — abstract interface for activity statistics.

The lifecycle engine emits events through this protocol after a write
commits; it never touches the user store directly.
"""

from __future__ import annotations

from enum import Enum
from typing import Protocol


class StatEvent(Enum):
    LETTER_CREATED = "letter_created"
    REFLECTION_ADDED = "reflection_added"
    GOAL_ACCOMPLISHED = "goal_accomplished"


class StatsPort(Protocol):
    """Abstract stats interface used by the lifecycle engine."""

    def apply_stat_event(self, user_id: str, event: StatEvent) -> object: ...

    def get_stats(self, user_id: str) -> object: ...
