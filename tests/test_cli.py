"""
Tests for CLI display functions and the entry point.
"""

import io
import os
from datetime import date
from contextlib import redirect_stdout
from unittest.mock import patch

import pytest

from fittrack.achievements import ACHIEVEMENTS, get_all_achievements_status
from fittrack.cli import (
    display_achievements,
    display_calendar,
    display_level,
    display_streak,
    display_today,
    get_milestone_message,
)
from fittrack.config import validate_config
from fittrack.main import main
from fittrack.storage import FitnessStorage


def capture(func, *args, **kwargs) -> str:
    output = io.StringIO()
    with redirect_stdout(output):
        func(*args, **kwargs)
    return output.getvalue()


class TestGetMilestoneMessage:
    """Tests for milestone messages."""

    def test_7_day_milestone(self):
        assert get_milestone_message(7) == "A full training week!"

    def test_30_day_milestone(self):
        assert get_milestone_message(30) == "A month of healthy days!"

    def test_no_milestone(self):
        assert get_milestone_message(5) is None
        assert get_milestone_message(99) is None

    def test_three_week_milestone(self):
        assert get_milestone_message(21) is not None


class TestDisplayStreak:
    """Tests for streak display."""

    def test_no_active_streak(self):
        result = capture(
            display_streak,
            {"current_streak": 0, "streak_active": False, "last_checkin_date": None},
        )
        assert "No active streak" in result

    def test_single_day_streak(self):
        result = capture(
            display_streak,
            {"current_streak": 1, "streak_active": True, "last_checkin_date": "2026-01-20"},
        )
        assert "1 day" in result
        assert "2026-01-20" in result

    def test_inactive_streak_prompts(self):
        result = capture(
            display_streak,
            {"current_streak": 5, "streak_active": False, "last_checkin_date": "2026-01-19"},
        )
        assert "5 days" in result
        assert "check in today to keep it going" in result

    def test_milestone_shown(self):
        result = capture(
            display_streak,
            {"current_streak": 7, "streak_active": True, "last_checkin_date": "2026-01-20"},
        )
        assert "A full training week!" in result

    def test_best_streak_shown_when_longer(self):
        result = capture(
            display_streak,
            {
                "current_streak": 2,
                "longest_streak": 9,
                "streak_active": True,
                "last_checkin_date": "2026-01-20",
            },
        )
        assert "Best streak: 9 days" in result

    def test_lapsed_streak_invites_restart(self):
        result = capture(
            display_streak,
            {"current_streak": 0, "streak_active": False, "last_checkin_date": "2026-01-10"},
        )
        assert "starts a new one" in result


class TestDisplayLevel:
    """Tests for the level and experience display."""

    def test_progress_towards_next_level(self):
        result = capture(
            display_level, {"username": "gina", "nickname": None, "level": 3, "exp": 150}
        )
        assert "gina - level 3" in result
        assert "150/300 exp" in result
        assert "[##########----------]" in result
        assert "150 exp to level 4" in result

    def test_unlock_rewards_past_threshold(self):
        result = capture(
            display_level, {"username": "gina", "nickname": "G", "level": 1, "exp": 130}
        )
        assert "G - level 1" in result
        assert "[####################]" in result
        assert "Level 2 reached at your next check-in" in result


class TestDisplayToday:
    """Tests for today's check-in checklist."""

    def test_done_and_pending_types(self):
        status = {
            "date": "2026-01-20",
            "today": {
                "exercise": {
                    "name": "Exercise", "icon": "x", "exp_reward": 20, "checked": True
                },
                "water": {
                    "name": "Drink Water", "icon": "w", "exp_reward": 5, "checked": False
                },
            },
        }

        result = capture(display_today, status)

        assert "Today (2026-01-20): 1/2 check-ins, +20 exp" in result
        assert "✅ x Exercise" in result
        assert "⬜ w Drink Water" in result


class TestDisplayCalendar:
    """Tests for the activity calendar."""

    def test_marks_checkin_days(self):
        result = capture(
            display_calendar, ["2026-01-20", "2026-01-19"], days=7, today="2026-01-20"
        )
        assert "Recent Activity:" in result
        assert result.count("[*]") == 2
        assert result.count("[ ]") == 5

    def test_header(self):
        result = capture(display_calendar, [], days=14, today="2026-01-20")
        assert "Mon Tue Wed Thu Fri Sat Sun" in result
        assert result.count("[ ]") == 14


class TestDisplayAchievements:
    """Tests for the achievement list."""

    def test_counts_and_new_unlocks(self):
        records = [{"achievement_id": "ach-first-checkin", "unlocked_at": "2026-01-20T10:00:00"}]
        first = next(a for a in ACHIEVEMENTS if a.id == "ach-first-checkin")

        result = capture(display_achievements, get_all_achievements_status(records), [first])

        assert "Unlocked" in result
        assert "+10 exp" in result
        assert "1/20" in result


class TestMain:
    """Tests for the command line entry point."""

    @pytest.fixture
    def db_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("FITTRACK_DB_PATH", str(tmp_path / "cli.db"))
        return FitnessStorage()

    def test_usage_error(self, db_env):
        with redirect_stdout(io.StringIO()):
            assert main([]) == 2
            assert main(["abc"]) == 2

    def test_unknown_user(self, db_env):
        output = io.StringIO()
        with redirect_stdout(output):
            assert main(["42"]) == 1
        assert "No user with id 42" in output.getvalue()

    def test_summary(self, db_env):
        user = db_env.create_user("frank")
        today = date.today().isoformat()
        db_env.award_checkin(user["id"], today, "exercise", 20, created_at=f"{today}T12:00:00")

        output = io.StringIO()
        with redirect_stdout(output):
            assert main([str(user["id"])]) == 0

        result = output.getvalue()
        assert "frank - level 1" in result
        assert "Current Streak: 1 day" in result
        assert "30/100 exp" in result
        assert "1/6 check-ins, +20 exp" in result
        assert "Getting Started" in result

    def test_invalid_log_level(self, db_env):
        with patch.dict(os.environ, {"FITTRACK_LOG_LEVEL": "LOUD"}):
            with pytest.raises(ValueError):
                validate_config()
            output = io.StringIO()
            with redirect_stdout(output):
                assert main(["1"]) == 1
            assert "Configuration Error" in output.getvalue()
