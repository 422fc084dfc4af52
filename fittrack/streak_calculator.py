"""
Calculate check-in streaks from calendar dates.
"""

from datetime import date, datetime, timedelta
from typing import Iterable


def calculate_streak(
    checkin_dates: Iterable[str | date | None], today: str | date | None = None
) -> dict:
    """
    Calculate streak information from check-in dates.

    Args:
        checkin_dates: Dates with at least one check-in, as YYYY-MM-DD strings
            or date objects. Order and duplicates do not matter.
        today: Override today's date for testing (YYYY-MM-DD or date).
            Defaults to current date.

    Returns:
        Dictionary with streak statistics:
        - current_streak: Consecutive days ending today (or yesterday)
        - longest_streak: Longest streak found in the data
        - streak_active: Whether there is a check-in today
        - last_checkin_date: Most recent check-in date (or None)
        - checkin_dates: List of unique dates with check-ins (sorted descending)
    """
    dates = sorted(
        {parsed for parsed in (_parse_date(d) for d in checkin_dates) if parsed},
        reverse=True,  # Most recent first
    )

    if not dates:
        return {
            "current_streak": 0,
            "longest_streak": 0,
            "streak_active": False,
            "last_checkin_date": None,
            "checkin_dates": [],
        }

    if today is None:
        today_date = datetime.now().date()
    else:
        today_date = _parse_date(today)

    current_streak = _calculate_current_streak(dates, today_date)

    # Longest streak should be at least as long as current streak
    longest_streak = max(_calculate_longest_streak(dates), current_streak)

    return {
        "current_streak": current_streak,
        "longest_streak": longest_streak,
        "streak_active": dates[0] == today_date,
        "last_checkin_date": dates[0].isoformat(),
        "checkin_dates": [d.isoformat() for d in dates],
    }


def _parse_date(value) -> date | None:
    """Normalize a date-like value, returning None for unusable entries."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value or value == "unknown":
        return None
    try:
        return datetime.strptime(value[:10], "%Y-%m-%d").date()
    except ValueError:
        return None


def _calculate_current_streak(dates: list[date], today: date) -> int:
    """
    Calculate the current streak from check-in dates.

    The walk is anchored at the most recent check-in, which has to be today
    or yesterday; a day without a check-in is never counted.

    Args:
        dates: Unique dates sorted descending
        today: Today's date

    Returns:
        Current streak count
    """
    if not dates:
        return 0

    most_recent = dates[0]
    if (today - most_recent).days > 1:
        return 0

    streak = 0
    for index, checkin_date in enumerate(dates):
        if checkin_date != most_recent - timedelta(days=index):
            break
        streak += 1

    return streak


def _calculate_longest_streak(dates: list[date]) -> int:
    """
    Calculate the longest streak in the check-in history.

    Args:
        dates: Unique dates sorted descending

    Returns:
        Longest streak count
    """
    if not dates:
        return 0

    longest = 1
    current_run = 1

    for newer, older in zip(dates, dates[1:]):
        # Dates are in descending order
        if newer - older == timedelta(days=1):
            current_run += 1
            longest = max(longest, current_run)
        else:
            current_run = 1

    return longest
