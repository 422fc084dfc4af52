"""
Achievement unlocking for fit-daily.

Evaluates the achievement catalog against a user's current activity and
records every newly satisfied achievement exactly once.
"""

import logging
from datetime import date

from fittrack.achievements import (
    ACHIEVEMENTS,
    EARLY_BIRD_HOUR,
    NIGHT_OWL_HOUR,
    STEPS_GOAL,
    Achievement,
    ActivityAggregates,
    check_achievements,
    sort_catalog,
)
from fittrack.exceptions import UserNotFoundError
from fittrack.storage import FitnessStorage
from fittrack.streak_calculator import calculate_streak

logger = logging.getLogger(__name__)


def weight_in_goal(weight: float | None, threshold: dict) -> bool:
    """
    Check whether a weight lies inside the configured target range.

    Both bounds must be configured; a missing weight or range never matches.
    """
    low = threshold.get("weight_min")
    high = threshold.get("weight_max")
    if weight is None or low is None or high is None:
        return False
    return low <= weight <= high


class AchievementEngine:
    """Unlocks achievements for users."""

    def __init__(self, storage: FitnessStorage | None = None, catalog=ACHIEVEMENTS):
        """
        Initialize the engine.

        Args:
            storage: FitnessStorage instance. Creates default if not provided.
            catalog: Achievements to evaluate. Seeded into storage if missing.
        """
        self.storage = storage or FitnessStorage()
        self.catalog = sort_catalog(catalog)
        self.storage.seed_achievements(self.catalog)

    def compute_aggregates(
        self, user_id: int, today: str | date | None = None
    ) -> ActivityAggregates:
        """
        Read a user's activity from storage.

        Raises:
            UserNotFoundError: If the user doesn't exist
        """
        counts = self.storage.get_aggregate_counts(user_id)
        checkin_streak = calculate_streak(
            self.storage.get_distinct_checkin_dates(user_id), today=today
        )
        health_streak = calculate_streak(
            self.storage.get_health_record_dates(user_id), today=today
        )

        return ActivityAggregates(
            checkin_days=counts["checkin_days"],
            current_streak=checkin_streak["current_streak"],
            training_logs=counts["training_logs"],
            health_records=counts["health_records"],
            level=counts["level"],
            health_streak=health_streak["current_streak"],
            weight_in_goal=weight_in_goal(
                self.storage.get_latest_weight(user_id),
                self.storage.get_health_threshold(user_id),
            ),
            step_goal_days=self.storage.count_step_days(user_id, STEPS_GOAL),
            early_checkins=self.storage.count_early_checkins(user_id, EARLY_BIRD_HOUR),
            late_training_logs=self.storage.count_late_training_logs(user_id, NIGHT_OWL_HOUR),
        )

    def check_and_unlock(
        self, user_id: int, today: str | date | None = None
    ) -> list[Achievement]:
        """
        Unlock every achievement the user newly qualifies for.

        Each unlock and its experience credit are committed together, so a
        failure part way through keeps earlier unlocks and the call can be
        retried. An unlock that another caller recorded first is skipped.

        Args:
            user_id: The user ID
            today: Override today's date for streak criteria (testing)

        Returns:
            List of achievements unlocked by this call, in catalog order

        Raises:
            UserNotFoundError: If the user doesn't exist (nothing is written)
            StorageError: If a database read or write fails
        """
        if self.storage.get_user(user_id) is None:
            raise UserNotFoundError(user_id)

        aggregates = self.compute_aggregates(user_id, today=today)
        unlocked_ids = {
            record["achievement_id"]
            for record in self.storage.get_unlocked_achievements(user_id)
        }

        newly_unlocked = []
        for achievement in check_achievements(aggregates, unlocked_ids, self.catalog):
            if self.storage.record_unlock(user_id, achievement.id, achievement.exp_reward):
                logger.info(
                    "User %s unlocked %s (+%d exp)",
                    user_id,
                    achievement.id,
                    achievement.exp_reward,
                )
                newly_unlocked.append(achievement)
            else:
                logger.debug("User %s already has %s", user_id, achievement.id)

        return newly_unlocked
