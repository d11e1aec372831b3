"""
Tests for calendar-day streak tracking
"""
from datetime import date, datetime, timezone

import pytest

from progress_engine.logic import streak_service
from progress_engine.models import Streak, UserProgress


def utc(year, month, day, hour=12, minute=0):
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


class TestUpdateStreak:
    """Streak transitions"""

    def test_first_practice_starts_at_zero(self, leveling):
        progress = UserProgress(user_id="u1")

        progress, bonus = streak_service.update_streak(progress, leveling, utc(2025, 1, 1))

        assert progress.streak.current == 0
        assert progress.streak.last_practice_date == date(2025, 1, 1)
        assert bonus == 0
        assert progress.xp_points == 0

    def test_next_day_continues_with_bonus(self, leveling):
        """Jan 1 then Jan 2: current=1 and a 10 XP bonus"""
        progress = UserProgress(user_id="u1")
        streak_service.update_streak(progress, leveling, utc(2025, 1, 1))

        progress, bonus = streak_service.update_streak(progress, leveling, utc(2025, 1, 2))

        assert progress.streak.current == 1
        assert progress.streak.longest == 1
        assert bonus == 10
        assert progress.xp_points == 10
        assert progress.total_experience == 10

    def test_consecutive_days_accumulate(self, leveling):
        progress = UserProgress(user_id="u1", streak=Streak(current=0, longest=0, last_practice_date=date(2025, 1, 1)))

        for day in (2, 3, 4):
            streak_service.update_streak(progress, leveling, utc(2025, 1, day))

        assert progress.streak.current == 3
        assert progress.streak.longest == 3

    def test_same_day_twice_is_unchanged(self, leveling):
        progress = UserProgress(user_id="u1", streak=Streak(current=4, longest=6, last_practice_date=date(2025, 1, 1)))

        progress, bonus = streak_service.update_streak(progress, leveling, utc(2025, 1, 1, 8))
        progress, bonus_again = streak_service.update_streak(progress, leveling, utc(2025, 1, 1, 23, 59))

        assert progress.streak.current == 4
        assert progress.streak.longest == 6
        assert bonus == 0 and bonus_again == 0
        assert progress.xp_points == 0

    def test_gap_resets_to_one(self, leveling):
        progress = UserProgress(user_id="u1", streak=Streak(current=9, longest=9, last_practice_date=date(2025, 1, 1)))

        progress, bonus = streak_service.update_streak(progress, leveling, utc(2025, 1, 6))

        assert progress.streak.current == 1
        assert progress.streak.longest == 9
        assert progress.streak.last_practice_date == date(2025, 1, 6)
        assert bonus == 0

    def test_day_before_last_practice_is_ignored(self, leveling):
        progress = UserProgress(user_id="u1", streak=Streak(current=2, longest=2, last_practice_date=date(2025, 1, 5)))

        progress, bonus = streak_service.update_streak(progress, leveling, utc(2025, 1, 4))

        assert progress.streak.current == 2
        assert progress.streak.last_practice_date == date(2025, 1, 5)
        assert bonus == 0

    def test_uses_learner_timezone(self, leveling):
        """01:30 UTC on Jan 2 is still Jan 1 in Sao Paulo"""
        progress = UserProgress(
            user_id="u1",
            timezone="America/Sao_Paulo",
            streak=Streak(current=1, longest=1, last_practice_date=date(2025, 1, 1)),
        )

        progress, bonus = streak_service.update_streak(progress, leveling, utc(2025, 1, 2, 1, 30))

        assert progress.streak.current == 1
        assert bonus == 0

    def test_invalid_timezone_falls_back_to_default(self, leveling):
        progress = UserProgress(user_id="u1", timezone="Mars/Olympus_Mons")

        streak_service.update_streak(progress, leveling, utc(2025, 1, 1, 23, 30))

        assert progress.streak.last_practice_date == date(2025, 1, 1)


class TestStreakBonus:
    """Daily bonus tiers"""

    @pytest.mark.parametrize("days,expected", [
        (1, 10),
        (2, 10),
        (3, 15),
        (6, 15),
        (7, 20),
        (29, 20),
        (30, 25),
        (365, 25),
    ])
    def test_tiers(self, days, expected):
        assert streak_service.streak_bonus(days) == expected

    def test_tier_applies_to_new_streak_value(self, leveling):
        progress = UserProgress(user_id="u1", streak=Streak(current=2, longest=2, last_practice_date=date(2025, 1, 1)))

        _, bonus = streak_service.update_streak(progress, leveling, utc(2025, 1, 2))

        assert progress.streak.current == 3
        assert bonus == 15


class TestGetUserDay:
    """Local calendar day conversion"""

    def test_naive_datetime_is_utc(self):
        assert streak_service.get_user_day("Asia/Seoul", datetime(2025, 1, 1, 20, 0)) == date(2025, 1, 2)

    def test_aware_datetime(self):
        assert streak_service.get_user_day("America/Sao_Paulo", utc(2025, 11, 19, 2)) == date(2025, 11, 18)

    def test_is_valid_timezone(self):
        assert streak_service.is_valid_timezone("Europe/Berlin")
        assert not streak_service.is_valid_timezone("Nowhere/Special")
