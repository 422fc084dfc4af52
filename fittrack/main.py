"""
fit-daily: A gamified fitness habit tracker

Entry point for the command line summary.
"""

import sys

from fittrack.config import configure_logging, validate_config
from fittrack.achievement_engine import AchievementEngine
from fittrack.achievements import get_all_achievements_status
from fittrack.checkins import CheckInService
from fittrack.cli import (
    display_achievements,
    display_calendar,
    display_level,
    display_streak,
    display_today,
)
from fittrack.exceptions import FitTrackError
from fittrack.storage import FitnessStorage
from fittrack.streak_calculator import calculate_streak


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv

    print("fit-daily - Keep your check-in streak alive!")
    print("-" * 50)

    try:
        validate_config()
    except ValueError as e:
        print(f"\nConfiguration Error:\n{e}")
        return 1
    configure_logging()

    if len(args) != 1 or not args[0].isdigit():
        print("\nUsage: python -m fittrack.main <user_id>")
        return 2
    user_id = int(args[0])

    try:
        storage = FitnessStorage()
        user = storage.get_user(user_id)
        if user is None:
            print(f"\nNo user with id {user_id}.")
            return 1

        newly_unlocked = AchievementEngine(storage).check_and_unlock(user_id)
        user = storage.get_user(user_id)
        today_status = CheckInService(storage).get_today_status(user_id)
        streak_info = calculate_streak(storage.get_distinct_checkin_dates(user_id))
        achievements = get_all_achievements_status(storage.get_unlocked_achievements(user_id))
    except FitTrackError as e:
        print(f"\nError: {e}")
        return 1

    display_level(user)
    display_today(today_status)
    display_streak(streak_info)
    display_calendar(streak_info["checkin_dates"])
    display_achievements(achievements, newly_unlocked)

    return 0


if __name__ == "__main__":
    sys.exit(main())
