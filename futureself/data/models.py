"""
Future Self Letters — Data Models.

A letter owns its goals and reflections: they are addressed through the
parent letter and are deleted with it. User stats are owned by the user and
only changed by the stats aggregator.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

MOODS: tuple[str, ...] = ("☺️", "😢", "😰", "🤩", "🙏", "😫")


class GoalStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "inProgress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"
    CARRIED_FORWARD = "carriedForward"


@dataclass
class Goal:
    """A goal written inside a letter.

    ``carried_forward_to`` / ``carried_forward_from`` are letter ids linking a
    goal to its successor or predecessor on another letter.
    """

    id: str
    text: str
    status: GoalStatus = GoalStatus.PENDING
    reflection: str | None = None
    carried_forward_to: str | None = None
    carried_forward_from: str | None = None
    status_updated_at: datetime | None = None


@dataclass
class Reflection:
    """Thoughts written after reading a delivered letter."""

    id: str
    text: str
    date: datetime


@dataclass
class Letter:
    """A letter to the writer's future self."""

    id: str
    user_id: str
    content: str
    delivery_interval: str
    delivered_at: datetime               # aware UTC
    title: str = "Untitled"
    mood: str | None = None
    weather: str | None = None
    temperature: float | None = None
    current_song: str | None = None
    top_headline: str | None = None
    location: str | None = None
    is_delivered: bool = False
    goals: list[Goal] = field(default_factory=list)
    reflections: list[Reflection] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def goal(self, goal_id: str) -> Goal | None:
        """Return the goal with this id, or None."""
        for g in self.goals:
            if g.id == goal_id:
                return g
        return None


@dataclass
class UserStats:
    """Derived activity counters for one user."""

    total_letters: int = 0
    total_reflections: int = 0
    goals_accomplished: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    last_activity_date: date | None = None


@dataclass
class User:
    """A registered user. Credentials live with the auth layer, not here."""

    id: str
    username: str
    stats: UserStats = field(default_factory=UserStats)
    created_at: str = ""
