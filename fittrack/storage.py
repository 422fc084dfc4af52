"""
SQLite-based storage for users, activity and achievements.

Every public method opens its own connection, so one storage object can be
shared across request handlers and threads. Uniqueness rules (one check-in
per user/date/type, one unlock per user/achievement) are enforced by the
schema, not by read-then-write checks.
"""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

from fittrack.config import get_db_path
from fittrack.exceptions import (
    CheckInNotFoundError,
    DuplicateCheckInError,
    DuplicateUserError,
    StorageError,
    UserNotFoundError,
)
from fittrack.leveling import apply_level_ups, refund_experience

logger = logging.getLogger(__name__)

DEFAULT_HEALTH_THRESHOLD = {
    "weight_min": None,
    "weight_max": None,
    "systolic_min": 90,
    "systolic_max": 140,
    "diastolic_min": 60,
    "diastolic_max": 90,
    "steps_goal": 10000,
}

REQUIRED_THRESHOLDS = {"steps_goal"}


def _now() -> str:
    """Local timestamp with second precision."""
    return datetime.now().isoformat(timespec="seconds")


def _is_unique_violation(error: sqlite3.IntegrityError) -> bool:
    return "UNIQUE" in str(error)


class FitnessStorage:
    """SQLite-based storage for fit-daily."""

    def __init__(self, db_path: str | Path | None = None, timeout: float = 30.0):
        """
        Initialize the storage.

        Args:
            db_path: Path to the SQLite database file.
                     Defaults to FITTRACK_DB_PATH or ~/.fit-daily/fitness.db
            timeout: Seconds to wait for another writer's lock
        """
        if db_path is None:
            db_path = get_db_path()
        self.db_path = Path(db_path)
        self.timeout = timeout
        self._init_db()

    @contextmanager
    def _get_connection(self, immediate: bool = False):
        """
        Yield a connection wrapped in one transaction.

        Commits on success and rolls back on any exception. sqlite3 errors
        are re-raised as StorageError. With immediate=True the write lock is
        taken up front so read-modify-write sequences cannot interleave.
        """
        try:
            conn = sqlite3.connect(self.db_path, timeout=self.timeout)
        except sqlite3.Error as e:
            raise StorageError(f"Could not open database {self.db_path}: {e}") from e

        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA foreign_keys = ON")
            if immediate:
                conn.execute("BEGIN IMMEDIATE")
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StorageError(f"Database error: {e}") from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self) -> None:
        """Create tables and indexes if they don't exist."""
        # Ensure parent directory exists
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with self._get_connection() as conn:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    username TEXT UNIQUE NOT NULL,
                    nickname TEXT,
                    level INTEGER NOT NULL DEFAULT 1,
                    exp INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS check_ins (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL REFERENCES users(id),
                    check_date TEXT NOT NULL,
                    check_type TEXT NOT NULL,
                    notes TEXT,
                    created_at TEXT NOT NULL,
                    UNIQUE(user_id, check_date, check_type)
                );
                CREATE INDEX IF NOT EXISTS idx_check_ins_user_date
                    ON check_ins(user_id, check_date);

                CREATE TABLE IF NOT EXISTS training_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL REFERENCES users(id),
                    log_date TEXT NOT NULL,
                    duration INTEGER,
                    notes TEXT,
                    created_at TEXT NOT NULL
                );
                CREATE INDEX IF NOT EXISTS idx_training_logs_user
                    ON training_logs(user_id);

                CREATE TABLE IF NOT EXISTS health_records (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL REFERENCES users(id),
                    record_date TEXT NOT NULL,
                    weight REAL,
                    systolic INTEGER,
                    diastolic INTEGER,
                    steps INTEGER,
                    created_at TEXT NOT NULL
                );
                CREATE INDEX IF NOT EXISTS idx_health_records_user_date
                    ON health_records(user_id, record_date);

                CREATE TABLE IF NOT EXISTS health_thresholds (
                    user_id INTEGER PRIMARY KEY REFERENCES users(id),
                    weight_min REAL,
                    weight_max REAL,
                    systolic_min INTEGER,
                    systolic_max INTEGER,
                    diastolic_min INTEGER,
                    diastolic_max INTEGER,
                    steps_goal INTEGER NOT NULL DEFAULT 10000
                );

                CREATE TABLE IF NOT EXISTS achievements (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    description TEXT,
                    icon TEXT,
                    category TEXT NOT NULL,
                    exp_reward INTEGER NOT NULL DEFAULT 0,
                    criteria_type TEXT NOT NULL,
                    criteria_count INTEGER NOT NULL
                );

                CREATE TABLE IF NOT EXISTS user_achievements (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL REFERENCES users(id),
                    achievement_id TEXT NOT NULL REFERENCES achievements(id),
                    unlocked_at TEXT NOT NULL,
                    UNIQUE(user_id, achievement_id)
                );
            """)

    # Users

    def create_user(self, username: str, nickname: str | None = None) -> dict:
        """
        Create a user at level 1 with no experience.

        Raises:
            DuplicateUserError: If the username is taken
        """
        with self._get_connection() as conn:
            try:
                cursor = conn.execute(
                    "INSERT INTO users (username, nickname, created_at) VALUES (?, ?, ?)",
                    (username, nickname, _now()),
                )
            except sqlite3.IntegrityError as e:
                if _is_unique_violation(e):
                    raise DuplicateUserError(f"Username already exists: {username}") from e
                raise
            user_id = cursor.lastrowid
        return self.get_user(user_id)

    def get_user(self, user_id: int) -> dict | None:
        """Get a user by ID, or None if it doesn't exist."""
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return dict(row) if row else None

    def credit_experience(self, user_id: int, amount: int) -> int:
        """
        Atomically add experience to a user.

        Returns:
            The new experience total

        Raises:
            UserNotFoundError: If the user doesn't exist
        """
        with self._get_connection(immediate=True) as conn:
            cursor = conn.execute(
                "UPDATE users SET exp = exp + ? WHERE id = ?", (amount, user_id)
            )
            if cursor.rowcount == 0:
                raise UserNotFoundError(user_id)
            row = conn.execute("SELECT exp FROM users WHERE id = ?", (user_id,)).fetchone()
        return row["exp"]

    # Check-ins

    def award_checkin(
        self,
        user_id: int,
        check_date: str,
        check_type: str,
        exp_reward: int,
        notes: str | None = None,
        created_at: str | None = None,
    ) -> dict:
        """
        Insert a check-in and award its experience in one transaction.

        Returns:
            Dictionary with record, level_up, new_level and new_exp

        Raises:
            UserNotFoundError: If the user doesn't exist
            DuplicateCheckInError: If the (user, date, type) check-in exists
        """
        with self._get_connection(immediate=True) as conn:
            user = conn.execute(
                "SELECT exp, level FROM users WHERE id = ?", (user_id,)
            ).fetchone()
            if user is None:
                raise UserNotFoundError(user_id)

            try:
                cursor = conn.execute(
                    """
                    INSERT INTO check_ins (user_id, check_date, check_type, notes, created_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (user_id, check_date, check_type, notes, created_at or _now()),
                )
            except sqlite3.IntegrityError as e:
                if _is_unique_violation(e):
                    raise DuplicateCheckInError(user_id, check_date, check_type) from e
                raise

            new_exp, new_level = apply_level_ups(user["exp"], user["level"], exp_reward)
            conn.execute(
                "UPDATE users SET exp = ?, level = ? WHERE id = ?",
                (new_exp, new_level, user_id),
            )
            record = conn.execute(
                "SELECT * FROM check_ins WHERE id = ?", (cursor.lastrowid,)
            ).fetchone()

        return {
            "record": dict(record),
            "level_up": new_level > user["level"],
            "new_level": new_level,
            "new_exp": new_exp,
        }

    def refund_checkin(
        self, user_id: int, check_date: str, check_type: str, exp_reward: int
    ) -> dict:
        """
        Delete a check-in and take back its experience in one transaction.

        Returns:
            The deleted check-in record

        Raises:
            CheckInNotFoundError: If there is no such check-in
        """
        with self._get_connection(immediate=True) as conn:
            record = conn.execute(
                """
                SELECT * FROM check_ins
                WHERE user_id = ? AND check_date = ? AND check_type = ?
                """,
                (user_id, check_date, check_type),
            ).fetchone()
            if record is None:
                raise CheckInNotFoundError(user_id, check_date, check_type)

            conn.execute("DELETE FROM check_ins WHERE id = ?", (record["id"],))
            user = conn.execute("SELECT exp FROM users WHERE id = ?", (user_id,)).fetchone()
            conn.execute(
                "UPDATE users SET exp = ? WHERE id = ?",
                (refund_experience(user["exp"], exp_reward), user_id),
            )
        return dict(record)

    def get_checkins(
        self,
        user_id: int,
        start_date: str | None = None,
        end_date: str | None = None,
        check_type: str | None = None,
    ) -> list[dict]:
        """
        Get a user's check-ins, newest first.

        Args:
            user_id: The user ID
            start_date: Earliest date to include (YYYY-MM-DD, inclusive)
            end_date: Latest date to include (YYYY-MM-DD, inclusive)
            check_type: Only include this check-in type
        """
        query = "SELECT * FROM check_ins WHERE user_id = ?"
        params: list = [user_id]

        if start_date:
            query += " AND check_date >= ?"
            params.append(start_date)
        if end_date:
            query += " AND check_date <= ?"
            params.append(end_date)
        if check_type:
            query += " AND check_type = ?"
            params.append(check_type)

        query += " ORDER BY check_date DESC, created_at DESC, id DESC"

        with self._get_connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [dict(row) for row in rows]

    def get_distinct_checkin_dates(self, user_id: int) -> list[str]:
        """
        Get all unique check-in dates for a user.

        Returns:
            List of dates in YYYY-MM-DD format, sorted descending.
        """
        with self._get_connection() as conn:
            rows = conn.execute(
                """
                SELECT DISTINCT check_date FROM check_ins
                WHERE user_id = ?
                ORDER BY check_date DESC
                """,
                (user_id,),
            ).fetchall()
        return [row[0] for row in rows]

    def get_checkin_type_counts(self, user_id: int) -> dict[str, int]:
        """Count a user's check-ins per type."""
        with self._get_connection() as conn:
            rows = conn.execute(
                """
                SELECT check_type, COUNT(*) AS count FROM check_ins
                WHERE user_id = ?
                GROUP BY check_type
                """,
                (user_id,),
            ).fetchall()
        return {row["check_type"]: row["count"] for row in rows}

    def count_early_checkins(self, user_id: int, before_hour: int) -> int:
        """Count check-ins created before the given local hour."""
        with self._get_connection() as conn:
            row = conn.execute(
                """
                SELECT COUNT(*) FROM check_ins
                WHERE user_id = ? AND CAST(strftime('%H', created_at) AS INTEGER) < ?
                """,
                (user_id, before_hour),
            ).fetchone()
        return row[0]

    # Training logs

    def create_training_log(
        self,
        user_id: int,
        log_date: str,
        duration: int | None = None,
        notes: str | None = None,
        created_at: str | None = None,
    ) -> dict:
        """
        Record a training session.

        Raises:
            UserNotFoundError: If the user doesn't exist
        """
        with self._get_connection() as conn:
            if conn.execute("SELECT 1 FROM users WHERE id = ?", (user_id,)).fetchone() is None:
                raise UserNotFoundError(user_id)
            cursor = conn.execute(
                """
                INSERT INTO training_logs (user_id, log_date, duration, notes, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (user_id, log_date, duration, notes, created_at or _now()),
            )
            row = conn.execute(
                "SELECT * FROM training_logs WHERE id = ?", (cursor.lastrowid,)
            ).fetchone()
        return dict(row)

    def get_training_logs(self, user_id: int, limit: int | None = None) -> list[dict]:
        """Get a user's training logs, newest first."""
        query = "SELECT * FROM training_logs WHERE user_id = ? ORDER BY log_date DESC, id DESC"
        params: list = [user_id]
        if limit:
            query += " LIMIT ?"
            params.append(limit)

        with self._get_connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [dict(row) for row in rows]

    def count_late_training_logs(self, user_id: int, from_hour: int) -> int:
        """Count training logs created at or after the given local hour."""
        with self._get_connection() as conn:
            row = conn.execute(
                """
                SELECT COUNT(*) FROM training_logs
                WHERE user_id = ? AND CAST(strftime('%H', created_at) AS INTEGER) >= ?
                """,
                (user_id, from_hour),
            ).fetchone()
        return row[0]

    # Health records

    def create_health_record(
        self,
        user_id: int,
        record_date: str,
        weight: float | None = None,
        systolic: int | None = None,
        diastolic: int | None = None,
        steps: int | None = None,
    ) -> dict:
        """
        Record a health measurement.

        Raises:
            UserNotFoundError: If the user doesn't exist
        """
        with self._get_connection() as conn:
            if conn.execute("SELECT 1 FROM users WHERE id = ?", (user_id,)).fetchone() is None:
                raise UserNotFoundError(user_id)
            cursor = conn.execute(
                """
                INSERT INTO health_records
                    (user_id, record_date, weight, systolic, diastolic, steps, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (user_id, record_date, weight, systolic, diastolic, steps, _now()),
            )
            row = conn.execute(
                "SELECT * FROM health_records WHERE id = ?", (cursor.lastrowid,)
            ).fetchone()
        return dict(row)

    def get_health_records(
        self,
        user_id: int,
        start_date: str | None = None,
        end_date: str | None = None,
    ) -> list[dict]:
        """Get a user's health records, newest first."""
        query = "SELECT * FROM health_records WHERE user_id = ?"
        params: list = [user_id]

        if start_date:
            query += " AND record_date >= ?"
            params.append(start_date)
        if end_date:
            query += " AND record_date <= ?"
            params.append(end_date)

        query += " ORDER BY record_date DESC, id DESC"

        with self._get_connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [dict(row) for row in rows]

    def get_health_record_dates(self, user_id: int) -> list[str]:
        """Get all unique dates with a health record, sorted descending."""
        with self._get_connection() as conn:
            rows = conn.execute(
                """
                SELECT DISTINCT record_date FROM health_records
                WHERE user_id = ?
                ORDER BY record_date DESC
                """,
                (user_id,),
            ).fetchall()
        return [row[0] for row in rows]

    def get_latest_weight(self, user_id: int) -> float | None:
        """Get the most recently recorded weight, if any."""
        with self._get_connection() as conn:
            row = conn.execute(
                """
                SELECT weight FROM health_records
                WHERE user_id = ? AND weight IS NOT NULL
                ORDER BY record_date DESC, id DESC
                LIMIT 1
                """,
                (user_id,),
            ).fetchone()
        return row["weight"] if row else None

    def count_step_days(self, user_id: int, min_steps: int) -> int:
        """Count distinct days with a step count of at least min_steps."""
        with self._get_connection() as conn:
            row = conn.execute(
                """
                SELECT COUNT(DISTINCT record_date) FROM health_records
                WHERE user_id = ? AND steps >= ?
                """,
                (user_id, min_steps),
            ).fetchone()
        return row[0]

    def get_health_threshold(self, user_id: int) -> dict:
        """Get the user's health thresholds, falling back to defaults."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM health_thresholds WHERE user_id = ?", (user_id,)
            ).fetchone()
        if row is None:
            return {"user_id": user_id, **DEFAULT_HEALTH_THRESHOLD}
        return dict(row)

    def set_health_threshold(self, user_id: int, **values) -> dict:
        """
        Set the user's health thresholds (upserts).

        Keys not given keep their current value (or the default). A None
        for a column that cannot be empty (steps_goal) is ignored.

        Raises:
            UserNotFoundError: If the user doesn't exist
        """
        updates = {
            k: v
            for k, v in values.items()
            if k in DEFAULT_HEALTH_THRESHOLD and not (v is None and k in REQUIRED_THRESHOLDS)
        }
        columns = list(DEFAULT_HEALTH_THRESHOLD)

        with self._get_connection(immediate=True) as conn:
            if conn.execute("SELECT 1 FROM users WHERE id = ?", (user_id,)).fetchone() is None:
                raise UserNotFoundError(user_id)
            row = conn.execute(
                "SELECT * FROM health_thresholds WHERE user_id = ?", (user_id,)
            ).fetchone()
            merged = dict(row) if row else dict(DEFAULT_HEALTH_THRESHOLD)
            merged.update(updates)
            conn.execute(
                f"""
                INSERT INTO health_thresholds (user_id, {", ".join(columns)})
                VALUES (?, {", ".join("?" for _ in columns)})
                ON CONFLICT(user_id) DO UPDATE SET
                    {", ".join(f"{c} = excluded.{c}" for c in columns)}
                """,
                (user_id, *(merged[c] for c in columns)),
            )
        return self.get_health_threshold(user_id)

    # Aggregates and achievements

    def get_aggregate_counts(self, user_id: int) -> dict:
        """
        Get the activity counts achievements are measured against.

        Returns:
            Dictionary with checkin_days (distinct dates), training_logs, health_records and level

        Raises:
            UserNotFoundError: If the user doesn't exist
        """
        with self._get_connection() as conn:
            user = conn.execute("SELECT level FROM users WHERE id = ?", (user_id,)).fetchone()
            if user is None:
                raise UserNotFoundError(user_id)
            checkin_days = conn.execute(
                "SELECT COUNT(DISTINCT check_date) FROM check_ins WHERE user_id = ?",
                (user_id,),
            ).fetchone()[0]
            training_logs = conn.execute(
                "SELECT COUNT(*) FROM training_logs WHERE user_id = ?", (user_id,)
            ).fetchone()[0]
            health_records = conn.execute(
                "SELECT COUNT(*) FROM health_records WHERE user_id = ?", (user_id,)
            ).fetchone()[0]

        return {
            "checkin_days": checkin_days,
            "training_logs": training_logs,
            "health_records": health_records,
            "level": user["level"] or 1,
        }

    def seed_achievements(self, catalog) -> int:
        """
        Insert catalog entries that are not stored yet.

        Returns:
            Number of entries inserted
        """
        inserted = 0
        with self._get_connection() as conn:
            for achievement in catalog:
                cursor = conn.execute(
                    """
                    INSERT OR IGNORE INTO achievements
                        (id, name, description, icon, category, exp_reward,
                         criteria_type, criteria_count)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        achievement.id,
                        achievement.name,
                        achievement.description,
                        achievement.icon,
                        achievement.category,
                        achievement.exp_reward,
                        achievement.criterion.kind.value,
                        achievement.criterion.threshold,
                    ),
                )
                inserted += cursor.rowcount
        if inserted:
            logger.info("Seeded %d achievements", inserted)
        return inserted

    def record_unlock(
        self,
        user_id: int,
        achievement_id: str,
        exp_reward: int,
        unlocked_at: str | None = None,
    ) -> bool:
        """
        Record an unlock and credit its experience in one transaction.

        Returns:
            True if newly unlocked, False if the user already had it
        """
        with self._get_connection(immediate=True) as conn:
            try:
                conn.execute(
                    """
                    INSERT INTO user_achievements (user_id, achievement_id, unlocked_at)
                    VALUES (?, ?, ?)
                    """,
                    (user_id, achievement_id, unlocked_at or _now()),
                )
            except sqlite3.IntegrityError as e:
                if not _is_unique_violation(e):
                    raise
                logger.debug("User %s already has %s", user_id, achievement_id)
                return False

            conn.execute(
                "UPDATE users SET exp = exp + ? WHERE id = ?", (exp_reward, user_id)
            )
        return True

    def get_unlocked_achievements(self, user_id: int) -> list[dict]:
        """
        Get a user's unlock records.

        Returns:
            List of dicts with achievement_id and unlocked_at
        """
        with self._get_connection() as conn:
            rows = conn.execute(
                """
                SELECT achievement_id, unlocked_at FROM user_achievements
                WHERE user_id = ?
                ORDER BY unlocked_at, id
                """,
                (user_id,),
            ).fetchall()
        return [dict(row) for row in rows]
