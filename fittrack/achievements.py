"""
Achievement system for fit-daily.

Provides the gamified achievement catalog and the criteria that unlock it,
based on check-ins, streaks, training logs, health records and level.
"""

from dataclasses import dataclass
from enum import Enum


class CriterionKind(str, Enum):
    """The activity aggregate an achievement criterion is measured against."""

    CHECKIN = "checkin"
    STREAK = "streak"
    TRAINING = "training"
    LEVEL = "level"
    HEALTH = "health"
    HEALTH_STREAK = "health_streak"
    WEIGHT_GOAL = "weight_goal"
    STEPS_10K = "steps_10k"
    EARLY_BIRD = "early_bird"
    NIGHT_OWL = "night_owl"


@dataclass(frozen=True)
class Criterion:
    """Unlock rule: the aggregate for `kind` must reach `threshold`."""

    kind: CriterionKind
    threshold: int

    def to_dict(self) -> dict:
        return {"type": self.kind.value, "count": self.threshold}


@dataclass(frozen=True)
class Achievement:
    """Represents an achievement that can be unlocked."""

    id: str
    name: str
    icon: str
    description: str
    category: str  # "checkin", "training", "health", "level" or "special"
    exp_reward: int
    criterion: Criterion


@dataclass
class ActivityAggregates:
    """A user's activity totals, computed fresh for each evaluation."""

    checkin_days: int = 0
    current_streak: int = 0
    training_logs: int = 0
    health_records: int = 0
    level: int = 1
    health_streak: int = 0
    weight_in_goal: bool = False
    step_goal_days: int = 0
    early_checkins: int = 0
    late_training_logs: int = 0


STEPS_GOAL = 10000
EARLY_BIRD_HOUR = 6  # check-ins before 06:00
NIGHT_OWL_HOUR = 23  # training logs from 23:00


CHECKIN_ACHIEVEMENTS = (
    Achievement(
        id="ach-first-checkin",
        name="Getting Started",
        icon="🎯",
        description="Complete your first check-in",
        category="checkin",
        exp_reward=10,
        criterion=Criterion(CriterionKind.CHECKIN, 1),
    ),
    Achievement(
        id="ach-checkin-7",
        name="One Week In",
        icon="📅",
        description="Check in on 7 different days",
        category="checkin",
        exp_reward=30,
        criterion=Criterion(CriterionKind.CHECKIN, 7),
    ),
    Achievement(
        id="ach-checkin-30",
        name="Monthly Regular",
        icon="🗓️",
        description="Check in on 30 different days",
        category="checkin",
        exp_reward=100,
        criterion=Criterion(CriterionKind.CHECKIN, 30),
    ),
    Achievement(
        id="ach-checkin-100",
        name="Hundred Day Legend",
        icon="🏆",
        description="Check in on 100 different days",
        category="checkin",
        exp_reward=300,
        criterion=Criterion(CriterionKind.CHECKIN, 100),
    ),
    Achievement(
        id="ach-streak-3",
        name="Hat Trick",
        icon="🔥",
        description="Check in 3 days in a row",
        category="checkin",
        exp_reward=20,
        criterion=Criterion(CriterionKind.STREAK, 3),
    ),
    Achievement(
        id="ach-streak-7",
        name="Week Warrior",
        icon="💪",
        description="Check in 7 days in a row",
        category="checkin",
        exp_reward=50,
        criterion=Criterion(CriterionKind.STREAK, 7),
    ),
    Achievement(
        id="ach-streak-30",
        name="Monthly Master",
        icon="👑",
        description="Check in 30 days in a row",
        category="checkin",
        exp_reward=200,
        criterion=Criterion(CriterionKind.STREAK, 30),
    ),
)

TRAINING_ACHIEVEMENTS = (
    Achievement(
        id="ach-first-training",
        name="First Workout",
        icon="🏋️",
        description="Log your first training session",
        category="training",
        exp_reward=10,
        criterion=Criterion(CriterionKind.TRAINING, 1),
    ),
    Achievement(
        id="ach-training-10",
        name="Gym Rookie",
        icon="🎯",
        description="Log 10 training sessions",
        category="training",
        exp_reward=50,
        criterion=Criterion(CriterionKind.TRAINING, 10),
    ),
    Achievement(
        id="ach-training-50",
        name="Gym Regular",
        icon="💪",
        description="Log 50 training sessions",
        category="training",
        exp_reward=150,
        criterion=Criterion(CriterionKind.TRAINING, 50),
    ),
    Achievement(
        id="ach-training-100",
        name="Gym Master",
        icon="🏅",
        description="Log 100 training sessions",
        category="training",
        exp_reward=300,
        criterion=Criterion(CriterionKind.TRAINING, 100),
    ),
)

HEALTH_ACHIEVEMENTS = (
    Achievement(
        id="ach-first-health",
        name="Health Tracker",
        icon="📊",
        description="Record your first health entry",
        category="health",
        exp_reward=10,
        criterion=Criterion(CriterionKind.HEALTH, 1),
    ),
    Achievement(
        id="ach-health-7",
        name="Diary Keeper",
        icon="📈",
        description="Record health data 7 days in a row",
        category="health",
        exp_reward=30,
        criterion=Criterion(CriterionKind.HEALTH_STREAK, 7),
    ),
    Achievement(
        id="ach-weight-goal",
        name="On Target",
        icon="⚖️",
        description="Reach your target weight range",
        category="health",
        exp_reward=50,
        criterion=Criterion(CriterionKind.WEIGHT_GOAL, 1),
    ),
    Achievement(
        id="ach-steps-10k",
        name="Ten Thousand Steps",
        icon="👟",
        description="Walk more than 10000 steps in a single day",
        category="health",
        exp_reward=20,
        criterion=Criterion(CriterionKind.STEPS_10K, 1),
    ),
)

LEVEL_ACHIEVEMENTS = (
    Achievement(
        id="ach-level-5",
        name="Rising Star",
        icon="⭐",
        description="Reach level 5",
        category="level",
        exp_reward=50,
        criterion=Criterion(CriterionKind.LEVEL, 5),
    ),
    Achievement(
        id="ach-level-10",
        name="Seasoned",
        icon="🌟",
        description="Reach level 10",
        category="level",
        exp_reward=100,
        criterion=Criterion(CriterionKind.LEVEL, 10),
    ),
    Achievement(
        id="ach-level-20",
        name="Summit",
        icon="💫",
        description="Reach level 20",
        category="level",
        exp_reward=300,
        criterion=Criterion(CriterionKind.LEVEL, 20),
    ),
)

SPECIAL_ACHIEVEMENTS = (
    Achievement(
        id="ach-early-bird",
        name="Early Bird",
        icon="🌅",
        description="Check in before 6 AM",
        category="special",
        exp_reward=15,
        criterion=Criterion(CriterionKind.EARLY_BIRD, 1),
    ),
    Achievement(
        id="ach-night-owl",
        name="Night Owl",
        icon="🦉",
        description="Log a training session after 11 PM",
        category="special",
        exp_reward=15,
        criterion=Criterion(CriterionKind.NIGHT_OWL, 1),
    ),
)


def sort_catalog(catalog) -> tuple[Achievement, ...]:
    """Order a catalog by category, then experience reward."""
    return tuple(sorted(catalog, key=lambda a: (a.category, a.exp_reward)))


# Combined catalog of all achievements, in evaluation order
ACHIEVEMENTS = sort_catalog(
    CHECKIN_ACHIEVEMENTS
    + TRAINING_ACHIEVEMENTS
    + HEALTH_ACHIEVEMENTS
    + LEVEL_ACHIEVEMENTS
    + SPECIAL_ACHIEVEMENTS
)


def measure(kind: CriterionKind, aggregates: ActivityAggregates) -> int:
    """
    Read the aggregate value a criterion kind is compared against.

    Args:
        kind: The criterion kind
        aggregates: The user's current activity aggregates

    Returns:
        The aggregate value for that kind
    """
    if kind is CriterionKind.CHECKIN:
        return aggregates.checkin_days
    elif kind is CriterionKind.STREAK:
        return aggregates.current_streak
    elif kind is CriterionKind.TRAINING:
        return aggregates.training_logs
    elif kind is CriterionKind.LEVEL:
        return aggregates.level
    elif kind is CriterionKind.HEALTH:
        return aggregates.health_records
    elif kind is CriterionKind.HEALTH_STREAK:
        return aggregates.health_streak
    elif kind is CriterionKind.WEIGHT_GOAL:
        return 1 if aggregates.weight_in_goal else 0
    elif kind is CriterionKind.STEPS_10K:
        return aggregates.step_goal_days
    elif kind is CriterionKind.EARLY_BIRD:
        return aggregates.early_checkins
    elif kind is CriterionKind.NIGHT_OWL:
        return aggregates.late_training_logs
    raise ValueError(f"Unknown criterion kind: {kind!r}")


def evaluate_criterion(criterion: Criterion, aggregates: ActivityAggregates) -> bool:
    """Return True when the aggregate has reached the criterion's threshold."""
    return measure(criterion.kind, aggregates) >= criterion.threshold


def check_achievements(
    aggregates: ActivityAggregates,
    unlocked_ids: set[str],
    catalog=ACHIEVEMENTS,
) -> list[Achievement]:
    """
    Check for newly unlocked achievements.

    Args:
        aggregates: The user's current activity aggregates
        unlocked_ids: Set of already unlocked achievement IDs
        catalog: Achievements to evaluate (defaults to the full catalog)

    Returns:
        List of newly unlocked Achievement objects, in catalog order
    """
    newly_unlocked = []

    for achievement in sort_catalog(catalog):
        # Skip already unlocked achievements
        if achievement.id in unlocked_ids:
            continue

        if evaluate_criterion(achievement.criterion, aggregates):
            newly_unlocked.append(achievement)

    return newly_unlocked


def achievement_to_dict(achievement: Achievement) -> dict:
    """Serialize an achievement for API responses."""
    return {
        "id": achievement.id,
        "name": achievement.name,
        "icon": achievement.icon,
        "description": achievement.description,
        "category": achievement.category,
        "exp_reward": achievement.exp_reward,
        "criteria": achievement.criterion.to_dict(),
    }


def get_all_achievements_status(
    unlocked_achievements: list[dict],
    catalog=ACHIEVEMENTS,
) -> list[dict]:
    """
    Get all achievements with their unlock status.

    Args:
        unlocked_achievements: List of unlocked achievement records from storage
            Each record has: achievement_id, unlocked_at

    Returns:
        List of all achievements with unlock status, sorted by category then reward
    """
    unlocked_lookup = {a["achievement_id"]: a for a in unlocked_achievements}

    result = []
    for achievement in sort_catalog(catalog):
        unlocked_record = unlocked_lookup.get(achievement.id)
        entry = achievement_to_dict(achievement)
        entry["unlocked"] = unlocked_record is not None
        entry["unlocked_at"] = unlocked_record["unlocked_at"] if unlocked_record else None
        result.append(entry)

    return result


def summarize_achievements(
    unlocked_achievements: list[dict],
    catalog=ACHIEVEMENTS,
) -> dict:
    """
    Summarize a user's progress through the catalog.

    Returns:
        Dictionary with total, unlocked, exp_earned and per-category counts
    """
    unlocked_ids = {a["achievement_id"] for a in unlocked_achievements}
    category_stats: dict[str, dict] = {}
    exp_earned = 0

    for achievement in sort_catalog(catalog):
        stats = category_stats.setdefault(
            achievement.category, {"category": achievement.category, "total": 0, "unlocked": 0}
        )
        stats["total"] += 1
        if achievement.id in unlocked_ids:
            stats["unlocked"] += 1
            exp_earned += achievement.exp_reward

    return {
        "total": len(catalog),
        "unlocked": sum(s["unlocked"] for s in category_stats.values()),
        "exp_earned": exp_earned,
        "category_stats": list(category_stats.values()),
    }


def get_categories(catalog=ACHIEVEMENTS) -> list[str]:
    """Get the distinct achievement categories, sorted."""
    return sorted({a.category for a in catalog})
