"""Tests for the fitness storage module."""

import os
import sqlite3
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from fittrack.achievements import ACHIEVEMENTS
from fittrack.config import get_db_path
from fittrack.exceptions import (
    CheckInNotFoundError,
    DuplicateCheckInError,
    DuplicateUserError,
    StorageError,
    UserNotFoundError,
)
from fittrack.storage import FitnessStorage


@pytest.fixture
def temp_db():
    """Create a temporary database file for testing."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)
    yield db_path
    if db_path.exists():
        db_path.unlink()


@pytest.fixture
def storage(temp_db):
    """Create a FitnessStorage instance with a temporary database."""
    return FitnessStorage(temp_db)


@pytest.fixture
def user(storage):
    return storage.create_user("alice", "Alice")


def checkin(storage, user_id, day, check_type="exercise", hour=12, exp_reward=20):
    return storage.award_checkin(
        user_id, day, check_type, exp_reward, created_at=f"{day}T{hour:02d}:00:00"
    )


class TestDatabaseInitialization:
    """Tests for database initialization."""

    def test_creates_parent_directories(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            db_path = Path(tmpdir) / "subdir" / "nested" / "fitness.db"
            FitnessStorage(db_path)
            assert db_path.exists()

    def test_initialization_is_idempotent(self, temp_db):
        FitnessStorage(temp_db)
        FitnessStorage(temp_db)
        storage = FitnessStorage(temp_db)
        assert storage.get_user(1) is None

    def test_default_path_uses_home_directory(self):
        with patch.dict(os.environ, {}, clear=True):
            assert get_db_path() == Path.home() / ".fit-daily" / "fitness.db"

    def test_env_var_overrides_default_path(self):
        with patch.dict(os.environ, {"FITTRACK_DB_PATH": "/custom/path.db"}):
            assert get_db_path() == Path("/custom/path.db")

    def test_unopenable_database_raises_storage_error(self, tmp_path):
        storage = FitnessStorage(tmp_path / "ok.db")
        storage.db_path = tmp_path
        with pytest.raises(StorageError):
            storage.get_user(1)


class TestUsers:
    """Tests for user methods."""

    def test_create_user_defaults(self, user):
        assert user["username"] == "alice"
        assert user["nickname"] == "Alice"
        assert user["level"] == 1
        assert user["exp"] == 0

    def test_duplicate_username(self, storage, user):
        with pytest.raises(DuplicateUserError):
            storage.create_user("alice")

    def test_get_missing_user(self, storage):
        assert storage.get_user(999) is None

    def test_credit_experience_is_additive(self, storage, user):
        assert storage.credit_experience(user["id"], 15) == 15
        assert storage.credit_experience(user["id"], 10) == 25
        assert storage.get_user(user["id"])["exp"] == 25

    def test_credit_experience_missing_user(self, storage):
        with pytest.raises(UserNotFoundError):
            storage.credit_experience(999, 10)


class TestCheckIns:
    """Tests for check-in methods."""

    def test_award_checkin_inserts_and_awards(self, storage, user):
        result = checkin(storage, user["id"], "2026-01-20")

        assert result["record"]["check_date"] == "2026-01-20"
        assert result["record"]["check_type"] == "exercise"
        assert result["new_exp"] == 20
        assert result["new_level"] == 1
        assert result["level_up"] is False

    def test_award_checkin_levels_up(self, storage, user):
        storage.credit_experience(user["id"], 90)

        result = checkin(storage, user["id"], "2026-01-20")

        assert result["level_up"] is True
        assert result["new_level"] == 2
        assert result["new_exp"] == 10

    def test_duplicate_checkin_is_rejected(self, storage, user):
        checkin(storage, user["id"], "2026-01-20")

        with pytest.raises(DuplicateCheckInError):
            checkin(storage, user["id"], "2026-01-20")

        # The failed attempt awarded nothing
        assert storage.get_user(user["id"])["exp"] == 20

    def test_same_day_different_type_is_allowed(self, storage, user):
        checkin(storage, user["id"], "2026-01-20", "exercise")
        checkin(storage, user["id"], "2026-01-20", "water", exp_reward=5)

        assert len(storage.get_checkins(user["id"])) == 2
        assert storage.get_distinct_checkin_dates(user["id"]) == ["2026-01-20"]

    def test_award_checkin_missing_user(self, storage):
        with pytest.raises(UserNotFoundError):
            checkin(storage, 999, "2026-01-20")

    def test_refund_checkin(self, storage, user):
        checkin(storage, user["id"], "2026-01-20")

        record = storage.refund_checkin(user["id"], "2026-01-20", "exercise", 20)

        assert record["check_type"] == "exercise"
        assert storage.get_checkins(user["id"]) == []
        assert storage.get_user(user["id"])["exp"] == 0

    def test_refund_never_goes_negative(self, storage, user):
        checkin(storage, user["id"], "2026-01-20", exp_reward=5)

        storage.refund_checkin(user["id"], "2026-01-20", "exercise", 20)

        assert storage.get_user(user["id"])["exp"] == 0

    def test_refund_missing_checkin(self, storage, user):
        with pytest.raises(CheckInNotFoundError):
            storage.refund_checkin(user["id"], "2026-01-20", "exercise", 20)

    def test_get_checkins_filters(self, storage, user):
        checkin(storage, user["id"], "2026-01-18")
        checkin(storage, user["id"], "2026-01-19", "water")
        checkin(storage, user["id"], "2026-01-20")

        assert [r["check_date"] for r in storage.get_checkins(user["id"])] == [
            "2026-01-20",
            "2026-01-19",
            "2026-01-18",
        ]
        assert len(storage.get_checkins(user["id"], start_date="2026-01-19")) == 2
        assert len(storage.get_checkins(user["id"], end_date="2026-01-18")) == 1
        assert len(storage.get_checkins(user["id"], check_type="water")) == 1

    def test_type_counts(self, storage, user):
        checkin(storage, user["id"], "2026-01-19")
        checkin(storage, user["id"], "2026-01-20")
        checkin(storage, user["id"], "2026-01-20", "water")

        assert storage.get_checkin_type_counts(user["id"]) == {"exercise": 2, "water": 1}

    def test_count_early_checkins(self, storage, user):
        checkin(storage, user["id"], "2026-01-19", hour=5)
        checkin(storage, user["id"], "2026-01-20", hour=6)

        assert storage.count_early_checkins(user["id"], 6) == 1


class TestActivityRecords:
    """Tests for training and health methods."""

    def test_training_logs(self, storage, user):
        storage.create_training_log(user["id"], "2026-01-19", duration=30)
        storage.create_training_log(
            user["id"], "2026-01-20", notes="late", created_at="2026-01-20T23:15:00"
        )

        logs = storage.get_training_logs(user["id"])
        assert [log["log_date"] for log in logs] == ["2026-01-20", "2026-01-19"]
        assert storage.count_late_training_logs(user["id"], 23) == 1
        assert len(storage.get_training_logs(user["id"], limit=1)) == 1

    def test_training_log_missing_user(self, storage):
        with pytest.raises(UserNotFoundError):
            storage.create_training_log(999, "2026-01-20")

    def test_health_records(self, storage, user):
        storage.create_health_record(user["id"], "2026-01-18", weight=71.0, steps=12000)
        storage.create_health_record(user["id"], "2026-01-19", steps=8000)
        storage.create_health_record(user["id"], "2026-01-20", weight=69.5, steps=10000)

        assert len(storage.get_health_records(user["id"])) == 3
        assert len(storage.get_health_records(user["id"], start_date="2026-01-19")) == 2
        assert storage.get_health_record_dates(user["id"])[0] == "2026-01-20"
        assert storage.get_latest_weight(user["id"]) == 69.5
        assert storage.count_step_days(user["id"], 10000) == 2

    def test_latest_weight_without_records(self, storage, user):
        assert storage.get_latest_weight(user["id"]) is None

    def test_health_threshold_defaults(self, storage, user):
        threshold = storage.get_health_threshold(user["id"])

        assert threshold["weight_min"] is None
        assert threshold["systolic_max"] == 140
        assert threshold["steps_goal"] == 10000

    def test_set_health_threshold_merges(self, storage, user):
        storage.set_health_threshold(user["id"], weight_min=60.0, weight_max=70.0)
        threshold = storage.set_health_threshold(user["id"], steps_goal=8000, bogus=1)

        assert threshold["weight_min"] == 60.0
        assert threshold["weight_max"] == 70.0
        assert threshold["steps_goal"] == 8000
        assert "bogus" not in threshold

    def test_set_health_threshold_ignores_null_steps_goal(self, storage, user):
        storage.set_health_threshold(user["id"], steps_goal=8000)
        threshold = storage.set_health_threshold(user["id"], steps_goal=None, weight_min=None)

        assert threshold["steps_goal"] == 8000
        assert threshold["weight_min"] is None

    def test_set_health_threshold_missing_user(self, storage):
        with pytest.raises(UserNotFoundError):
            storage.set_health_threshold(999, weight_min=60.0)


class TestAchievementStorage:
    """Tests for aggregate and unlock methods."""

    def test_seed_is_idempotent(self, storage):
        assert storage.seed_achievements(ACHIEVEMENTS) == len(ACHIEVEMENTS)
        assert storage.seed_achievements(ACHIEVEMENTS) == 0

    def test_aggregate_counts(self, storage, user):
        checkin(storage, user["id"], "2026-01-20")
        checkin(storage, user["id"], "2026-01-20", "water")
        storage.create_training_log(user["id"], "2026-01-20")
        storage.create_health_record(user["id"], "2026-01-20", weight=70.0)

        assert storage.get_aggregate_counts(user["id"]) == {
            "checkin_days": 1,
            "training_logs": 1,
            "health_records": 1,
            "level": 1,
        }

    def test_aggregate_counts_missing_user(self, storage):
        with pytest.raises(UserNotFoundError):
            storage.get_aggregate_counts(999)

    def test_record_unlock_once(self, storage, user):
        storage.seed_achievements(ACHIEVEMENTS)

        assert storage.record_unlock(user["id"], "ach-first-checkin", 10) is True
        assert storage.record_unlock(user["id"], "ach-first-checkin", 10) is False

        assert storage.get_user(user["id"])["exp"] == 10
        unlocked = storage.get_unlocked_achievements(user["id"])
        assert [u["achievement_id"] for u in unlocked] == ["ach-first-checkin"]

    def test_unlock_uniqueness_is_enforced_by_schema(self, storage, user, temp_db):
        storage.seed_achievements(ACHIEVEMENTS)
        storage.record_unlock(user["id"], "ach-first-checkin", 10)

        with sqlite3.connect(temp_db) as conn:
            with pytest.raises(sqlite3.IntegrityError):
                conn.execute(
                    "INSERT INTO user_achievements (user_id, achievement_id, unlocked_at) "
                    "VALUES (?, ?, ?)",
                    (user["id"], "ach-first-checkin", "2026-01-20T00:00:00"),
                )

    def test_record_unlock_unknown_achievement(self, storage, user):
        with pytest.raises(StorageError):
            storage.record_unlock(user["id"], "no-such-achievement", 10)
        assert storage.get_user(user["id"])["exp"] == 0
