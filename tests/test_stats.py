"""Tests for futureself.core.stats — streak rule and stats aggregator."""

from datetime import date, timedelta

import pytest

from futureself.core.errors import NotFoundError
from futureself.core.stats import StatsAggregator, advance_streak
from futureself.data.models import UserStats
from futureself.ports.stats_port import StatEvent

TODAY = date(2026, 3, 10)


class TestAdvanceStreak:
    def test_consecutive_day_extends_streak(self):
        stats = UserStats(
            current_streak=3, longest_streak=3,
            last_activity_date=TODAY - timedelta(days=1),
        )
        result = advance_streak(stats, TODAY)
        assert result.current_streak == 4
        assert result.longest_streak == 4
        assert result.last_activity_date == TODAY

    def test_gap_resets_streak(self):
        stats = UserStats(
            current_streak=3, longest_streak=3,
            last_activity_date=TODAY - timedelta(days=5),
        )
        result = advance_streak(stats, TODAY)
        assert result.current_streak == 1
        assert result.longest_streak == 3
        assert result.last_activity_date == TODAY

    def test_two_day_gap_resets_streak(self):
        stats = UserStats(
            current_streak=6, longest_streak=9,
            last_activity_date=TODAY - timedelta(days=2),
        )
        assert advance_streak(stats, TODAY).current_streak == 1

    def test_first_activity_starts_streak(self):
        result = advance_streak(UserStats(), TODAY)
        assert result.current_streak == 1
        assert result.longest_streak == 1
        assert result.last_activity_date == TODAY

    def test_same_day_keeps_streak(self):
        stats = UserStats(current_streak=2, longest_streak=7, last_activity_date=TODAY)
        result = advance_streak(stats, TODAY)
        assert result.current_streak == 2
        assert result.longest_streak == 7
        assert result.last_activity_date == TODAY

    def test_longest_never_below_current(self):
        stats = UserStats(
            current_streak=5, longest_streak=2,
            last_activity_date=TODAY - timedelta(days=1),
        )
        result = advance_streak(stats, TODAY)
        assert result.current_streak == 6
        assert result.longest_streak == 6

    def test_does_not_mutate_input(self):
        stats = UserStats(current_streak=1, longest_streak=1,
                          last_activity_date=TODAY - timedelta(days=1))
        advance_streak(stats, TODAY)
        assert stats.current_streak == 1

    def test_earlier_date_leaves_stats_alone(self):
        stats = UserStats(current_streak=2, longest_streak=2, last_activity_date=TODAY)
        result = advance_streak(stats, TODAY - timedelta(days=1))
        assert result == stats


class TestStatsAggregator:
    @pytest.fixture
    def agg(self, users):
        return StatsAggregator(users, today=lambda: TODAY)

    @pytest.mark.parametrize("event, counter", [
        (StatEvent.LETTER_CREATED, "total_letters"),
        (StatEvent.REFLECTION_ADDED, "total_reflections"),
        (StatEvent.GOAL_ACCOMPLISHED, "goals_accomplished"),
    ])
    def test_event_increments_its_counter(self, agg, users, event, counter):
        stats = agg.apply_stat_event("alice", event)
        assert getattr(stats, counter) == 1
        assert getattr(users.get_stats("alice"), counter) == 1
        assert users.get_stats("alice").current_streak == 1

    def test_only_one_counter_moves(self, agg, users):
        agg.apply_stat_event("alice", StatEvent.REFLECTION_ADDED)
        stats = users.get_stats("alice")
        assert stats.total_letters == 0
        assert stats.goals_accomplished == 0

    def test_same_day_events_do_not_grow_streak(self, agg, users):
        agg.apply_stat_event("alice", StatEvent.LETTER_CREATED)
        agg.apply_stat_event("alice", StatEvent.LETTER_CREATED)
        stats = users.get_stats("alice")
        assert stats.total_letters == 2
        assert stats.current_streak == 1
        assert stats.last_activity_date == TODAY

    def test_streak_continues_from_stored_stats(self, users):
        users.save_stats("alice", UserStats(
            total_letters=3, current_streak=3, longest_streak=3,
            last_activity_date=TODAY - timedelta(days=1),
        ))
        agg = StatsAggregator(users, today=lambda: TODAY)
        stats = agg.apply_stat_event("alice", StatEvent.LETTER_CREATED)
        assert stats.total_letters == 4
        assert stats.current_streak == 4
        assert stats.longest_streak == 4

    def test_users_are_independent(self, agg, users):
        agg.apply_stat_event("alice", StatEvent.LETTER_CREATED)
        assert users.get_stats("bob") == UserStats()

    def test_unknown_user_raises(self, agg):
        with pytest.raises(NotFoundError):
            agg.apply_stat_event("nobody", StatEvent.LETTER_CREATED)

    def test_get_stats(self, agg):
        assert agg.get_stats("alice") == UserStats()
        with pytest.raises(NotFoundError):
            agg.get_stats("nobody")

    def test_default_today_uses_configured_timezone(self, users):
        agg = StatsAggregator(users)
        stats = agg.apply_stat_event("alice", StatEvent.LETTER_CREATED)
        assert stats.last_activity_date is not None
