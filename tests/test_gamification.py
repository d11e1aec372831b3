"""
Tests for XP and leveling
"""
import pytest

from progress_engine.catalog import LevelingTable
from progress_engine.logic import gamification
from progress_engine.models import UserProgress


class TestAddXp:
    """XP accrual and level recomputation"""

    def test_level_and_progress_from_table(self):
        """150 XP between thresholds 100 and 300 is level 1 at 25%"""
        table = LevelingTable.from_pairs([(0, 0), (1, 100), (2, 300)])
        progress = UserProgress(user_id="u1")

        progress, level_up = gamification.add_xp(progress, 150, table)

        assert progress.xp_points == 150
        assert progress.total_experience == 150
        assert progress.current_level_number == 1
        assert progress.level_progress_percent == 25
        assert progress.next_level_xp_threshold == 300

    def test_level_up_flag(self, leveling):
        progress = UserProgress(user_id="u1")
        gamification.apply_level(progress, leveling)

        _, level_up = gamification.add_xp(progress, 50, leveling)
        assert level_up is False

        _, level_up = gamification.add_xp(progress, 60, leveling)
        assert level_up is True
        assert progress.current_level_number == 2

    @pytest.mark.parametrize("amount", [0, -10, None])
    def test_non_positive_amount_is_noop(self, leveling, amount):
        progress = UserProgress(user_id="u1", xp_points=40, total_experience=40)

        progress, level_up = gamification.add_xp(progress, amount, leveling)

        assert progress.xp_points == 40
        assert progress.total_experience == 40
        assert level_up is False

    def test_both_counters_increase_together(self, leveling):
        progress = UserProgress(user_id="u1", xp_points=120, total_experience=100)

        gamification.add_xp(progress, 30, leveling)

        assert progress.xp_points == 150
        assert progress.total_experience == 130

    @pytest.mark.parametrize("table", [None, LevelingTable()])
    def test_missing_table_falls_back(self, table):
        """Empty or unavailable table: level 1, no progress, never raises"""
        progress = UserProgress(user_id="u1")

        progress, _ = gamification.add_xp(progress, 500, table)

        assert progress.xp_points == 500
        assert progress.current_level_number == 1
        assert progress.level_progress_percent == 0
        assert progress.next_level_xp_threshold == 100

    def test_max_level_is_full(self, leveling):
        progress = UserProgress(user_id="u1")

        gamification.add_xp(progress, 10000, leveling)

        assert progress.current_level_number == 4
        assert progress.level_progress_percent == 100


class TestLevelDetails:
    """Pure level resolution"""

    def test_progress_percent_always_in_range(self, leveling):
        for xp in range(0, 1000, 7):
            details = gamification.level_details(xp, leveling)
            assert 0 <= details['levelProgressPercent'] <= 100

    def test_same_xp_same_level(self, leveling):
        assert gamification.level_details(299, leveling) == gamification.level_details(299, leveling)

    def test_exact_threshold_starts_level(self, leveling):
        details = gamification.level_details(300, leveling)
        assert details['currentLevel'] == 3
        assert details['levelProgressPercent'] == 0
        assert details['nextLevelXp'] == 600

    def test_xp_below_first_threshold(self):
        table = LevelingTable.from_pairs([(1, 50), (2, 100)])
        details = gamification.level_details(10, table)
        assert details['currentLevel'] == 1
        assert details['levelProgressPercent'] == 0
        assert details['nextLevelXp'] == 50

    def test_xp_to_next_level_below_first_threshold(self):
        table = LevelingTable.from_pairs([(1, 50), (2, 100)])
        progress, _ = gamification.add_xp(UserProgress(user_id="u1"), 20, table)

        assert gamification.xp_to_next_level(progress) == 30

    def test_calculate_level_progress_clamps(self):
        assert gamification.calculate_level_progress(500, 100, 300) == 100
        assert gamification.calculate_level_progress(50, 100, 300) == 0
        assert gamification.calculate_level_progress(100, 100, 100) == 100


class TestPracticeXp:
    """XP for practice sessions"""

    @pytest.mark.parametrize("activity,expected", [
        ("conversation", 15),
        ("vocabulary", 10),
        ("pronunciation", 20),
        ("grammar", 15),
        ("listening", 10),
    ])
    def test_base_xp_per_activity(self, activity, expected):
        assert gamification.practice_xp(activity, 60) == expected

    def test_minutes_beyond_first(self):
        # 5 full minutes -> 4 extra XP
        assert gamification.practice_xp("pronunciation", 300) == 24
        assert gamification.practice_xp("vocabulary", 359) == 14

    def test_short_session_gets_base(self):
        assert gamification.practice_xp("conversation", 0) == 15
        assert gamification.practice_xp("conversation", 59) == 15
