"""
Daily check-ins for fit-daily.

Provides the check-in types, the check-in and cancel actions with their
experience awards, and the per-user check-in views (today, stats, calendar).
"""

import calendar
import logging
from datetime import date, datetime, timedelta

from fittrack.exceptions import InvalidCheckInTypeError, InvalidDateError
from fittrack.storage import FitnessStorage
from fittrack.streak_calculator import calculate_streak

logger = logging.getLogger(__name__)

CHECKIN_TYPES = {
    "exercise": {"name": "Exercise", "icon": "🏃", "exp_reward": 20},
    "water": {"name": "Drink Water", "icon": "💧", "exp_reward": 5},
    "sleep": {"name": "Early Night", "icon": "😴", "exp_reward": 10},
    "diet": {"name": "Healthy Eating", "icon": "🥗", "exp_reward": 10},
    "meditation": {"name": "Meditation", "icon": "🧘", "exp_reward": 15},
    "steps": {"name": "Step Goal", "icon": "👟", "exp_reward": 15},
}


def _to_date(value: str | date | None) -> date:
    if value is None:
        return datetime.now().date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as e:
        raise InvalidDateError(f"Invalid date: {value}") from e


def _require_type(check_type: str) -> dict:
    config = CHECKIN_TYPES.get(check_type)
    if config is None:
        raise InvalidCheckInTypeError(f"Invalid check-in type: {check_type}")
    return config


class CheckInService:
    """Manages check-ins and the experience they award."""

    def __init__(self, storage: FitnessStorage | None = None):
        """
        Initialize the check-in service.

        Args:
            storage: FitnessStorage instance. Creates default if not provided.
        """
        self.storage = storage or FitnessStorage()

    def check_in(
        self,
        user_id: int,
        check_type: str,
        notes: str | None = None,
        check_date: str | date | None = None,
    ) -> dict:
        """
        Record a check-in and award its experience.

        Args:
            user_id: The user ID
            check_type: One of CHECKIN_TYPES
            notes: Optional free-text note
            check_date: Date to check in for (defaults to today)

        Returns:
            Dictionary with record, exp_reward, level_up, new_level, new_exp

        Raises:
            InvalidCheckInTypeError: If check_type is unknown
            DuplicateCheckInError: If already checked in for that type and date
            UserNotFoundError: If the user doesn't exist
        """
        config = _require_type(check_type)
        day = _to_date(check_date).isoformat()

        result = self.storage.award_checkin(
            user_id,
            check_date=day,
            check_type=check_type,
            exp_reward=config["exp_reward"],
            notes=notes,
        )
        if result["level_up"]:
            logger.info("User %s reached level %d", user_id, result["new_level"])

        return {"exp_reward": config["exp_reward"], **result}

    def cancel(
        self, user_id: int, check_type: str, check_date: str | date | None = None
    ) -> dict:
        """
        Cancel a check-in and refund its experience.

        Returns:
            Dictionary with the deleted record and exp_deducted

        Raises:
            InvalidCheckInTypeError: If check_type is unknown
            CheckInNotFoundError: If there is no such check-in
        """
        config = _require_type(check_type)
        day = _to_date(check_date).isoformat()

        record = self.storage.refund_checkin(
            user_id, check_date=day, check_type=check_type, exp_reward=config["exp_reward"]
        )
        return {"record": record, "exp_deducted": config["exp_reward"]}

    def get_today_status(self, user_id: int, today: str | date | None = None) -> dict:
        """
        Get every check-in type with whether it was done today.

        Returns:
            Dictionary with date and a per-type status mapping
        """
        day = _to_date(today).isoformat()
        records = self.storage.get_checkins(user_id, start_date=day, end_date=day)
        by_type = {r["check_type"]: r for r in records}

        status = {}
        for key, config in CHECKIN_TYPES.items():
            record = by_type.get(key)
            status[key] = {**config, "checked": record is not None, "record": record}

        return {"date": day, "today": status}

    def get_stats(self, user_id: int, today: str | date | None = None) -> dict:
        """
        Calculate check-in statistics for a user.

        Returns:
            Dictionary with check-in statistics:
            - total_checkins: All check-ins ever made
            - current_streak / longest_streak: Consecutive check-in days
            - streak_active: Whether there is a check-in today
            - week_days: Distinct check-in days this week (Mon-Sun)
            - month_days: Distinct check-in days this calendar month
            - type_stats: Check-in count per type
        """
        today_date = _to_date(today)
        dates = self.storage.get_distinct_checkin_dates(user_id)
        streak = calculate_streak(dates, today=today_date)
        type_stats = self.storage.get_checkin_type_counts(user_id)

        week_start = (today_date - timedelta(days=today_date.weekday())).isoformat()
        month_start = today_date.replace(day=1).isoformat()
        today_str = today_date.isoformat()

        return {
            "total_checkins": sum(type_stats.values()),
            "current_streak": streak["current_streak"],
            "longest_streak": streak["longest_streak"],
            "streak_active": streak["streak_active"],
            "last_checkin_date": streak["last_checkin_date"],
            "week_days": sum(1 for d in dates if week_start <= d <= today_str),
            "month_days": sum(1 for d in dates if month_start <= d <= today_str),
            "type_stats": type_stats,
        }

    def get_calendar(self, user_id: int, year: int, month: int) -> dict:
        """
        Get the check-in types done on each day of a month.

        Returns:
            Dictionary with year, month and a date -> [types] mapping
        """
        last_day = calendar.monthrange(year, month)[1]
        start = date(year, month, 1).isoformat()
        end = date(year, month, last_day).isoformat()

        days: dict[str, list[str]] = {}
        for record in sorted(
            self.storage.get_checkins(user_id, start_date=start, end_date=end),
            key=lambda r: (r["check_date"], r["id"]),
        ):
            days.setdefault(record["check_date"], []).append(record["check_type"])

        return {"year": year, "month": month, "calendar": days}
