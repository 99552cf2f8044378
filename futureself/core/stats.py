"""
Future Self Letters — Stats Aggregator.

Keeps each user's derived counters (letters written, reflections, goals
accomplished) and their daily activity streak. Only this module writes
user stats; the lifecycle engine reaches it through StatsPort.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import TYPE_CHECKING, Callable
from zoneinfo import ZoneInfo

from futureself.core.errors import NotFoundError
from futureself.ports.stats_port import StatEvent

if TYPE_CHECKING:
    from futureself.data.db import UserDB
    from futureself.data.models import UserStats

logger = logging.getLogger(__name__)

_COUNTERS = {
    StatEvent.LETTER_CREATED: "total_letters",
    StatEvent.REFLECTION_ADDED: "total_reflections",
    StatEvent.GOAL_ACCOMPLISHED: "goals_accomplished",
}


def advance_streak(stats: UserStats, today: date) -> UserStats:
    """Return stats with the streak updated for activity on ``today``.

    Rules:
    - no prior activity -> current streak 1
    - same day -> streak unchanged
    - exactly one day later -> current streak + 1
    - more than one day later -> current streak resets to 1
    ``last_activity_date`` always moves to ``today`` and the longest streak
    never falls below the current one.
    """
    last = stats.last_activity_date
    current = stats.current_streak

    if last is None:
        current = 1
    else:
        gap = (today - last).days
        if gap == 1:
            current += 1
        elif gap > 1:
            current = 1
        elif gap < 0:
            # Clock moved backwards; keep the streak, don't rewind the date
            logger.warning("Activity date %s precedes last activity %s", today, last)
            return stats

    return replace(
        stats,
        current_streak=current,
        longest_streak=max(stats.longest_streak, current),
        last_activity_date=today,
    )


class StatsAggregator:
    """Applies lifecycle events to a user's stats record (implements StatsPort)."""

    def __init__(
        self,
        user_db: UserDB,
        today: Callable[[], date] | None = None,
    ) -> None:
        self._user_db = user_db
        self._today = today or _local_today

    def apply_stat_event(self, user_id: str, event: StatEvent) -> UserStats:
        """Bump the counter for ``event`` and refresh the streak.

        Raises NotFoundError if the user has no stats record.
        """
        stats = self._user_db.get_stats(user_id)
        if stats is None:
            raise NotFoundError(f"User {user_id} not found")

        counter = _COUNTERS[event]
        stats = replace(stats, **{counter: getattr(stats, counter) + 1})
        stats = advance_streak(stats, self._today())

        self._user_db.save_stats(user_id, stats)
        logger.info(
            "Stats for user %s after %s: %s=%d, streak %d (longest %d)",
            user_id, event.value, counter, getattr(stats, counter),
            stats.current_streak, stats.longest_streak,
        )
        return stats

    def get_stats(self, user_id: str) -> UserStats:
        """Return a user's stats, or raise NotFoundError."""
        stats = self._user_db.get_stats(user_id)
        if stats is None:
            raise NotFoundError(f"User {user_id} not found")
        return stats


def _local_today() -> date:
    """Today's date in the configured TIMEZONE."""
    from futureself.config import settings

    return datetime.now(ZoneInfo(settings.TIMEZONE)).date()
