"""
CLI display functions for fit-daily.
"""

from datetime import datetime, timedelta

from fittrack.leveling import level_threshold

BAR_WIDTH = 20


def get_milestone_message(streak_days: int) -> str | None:
    """
    Get the encouragement shown when a streak reaches a milestone.

    Args:
        streak_days: Current streak in days

    Returns:
        Milestone message string or None if no milestone
    """
    milestones = {
        3: "The habit is forming!",
        7: "A full training week!",
        21: "21 days, it's part of your routine now!",
        30: "A month of healthy days!",
        100: "100 days - fitness legend!",
    }
    return milestones.get(streak_days)


def display_level(user: dict) -> None:
    """
    Display the user's level and progress towards the next one.

    Args:
        user: User row with username, nickname, level and exp
    """
    name = user.get("nickname") or user["username"]
    level = user["level"] or 1
    exp = user["exp"] or 0
    needed = level_threshold(level)

    filled = min(BAR_WIDTH, exp * BAR_WIDTH // needed)
    bar = "#" * filled + "-" * (BAR_WIDTH - filled)

    print(f"\n{name} - level {level}")
    print(f"⭐ [{bar}] {exp}/{needed} exp")
    if exp < needed:
        print(f"   {needed - exp} exp to level {level + 1}")
    else:
        # Unlock rewards are folded into the level at the next check-in
        print(f"   Level {level + 1} reached at your next check-in")
    print()


def display_today(today_status: dict) -> None:
    """
    Display which check-in types are done today and the experience earned.

    Args:
        today_status: Dictionary from CheckInService.get_today_status()
    """
    types = today_status["today"]
    done = [t for t in types.values() if t["checked"]]
    earned = sum(t["exp_reward"] for t in done)

    print(f"Today ({today_status['date']}): {len(done)}/{len(types)} check-ins, +{earned} exp")
    for config in types.values():
        mark = "✅" if config["checked"] else "⬜"
        print(f"   {mark} {config['icon']} {config['name']:<16} +{config['exp_reward']} exp")
    print()


def display_streak(streak_info: dict) -> None:
    """
    Display streak information to the console with milestone messages.

    Args:
        streak_info: Dictionary from calculate_streak() containing:
            - current_streak: int
            - longest_streak: int
            - streak_active: bool
            - last_checkin_date: str or None
    """
    current = streak_info["current_streak"]
    longest = streak_info.get("longest_streak", 0)
    last_date = streak_info["last_checkin_date"]
    active = streak_info["streak_active"]

    if current == 0:
        status = "No active streak"
        if last_date:
            status = f"{status} - any check-in today starts a new one"
    else:
        day_word = "day" if current == 1 else "days"
        status = f"Current Streak: {current} {day_word}"

        milestone = get_milestone_message(current)
        if milestone:
            status = f"{status} - {milestone}"
        elif not active:
            status = f"{status} (check in today to keep it going!)"

    print(f"🔥 {status}")
    if longest > current:
        print(f"   Best streak: {longest} days")
    if last_date:
        print(f"   Last check-in: {last_date}")
    print()


def display_calendar(
    checkin_dates: list[str], days: int = 14, today: str | None = None
) -> None:
    """
    Display a text-based activity calendar of recent check-ins.

    Args:
        checkin_dates: List of dates with check-ins (YYYY-MM-DD format)
        days: Number of days to display (default 14)
        today: Override today's date for testing (YYYY-MM-DD format)
    """
    if today is None:
        today_date = datetime.now().date()
    else:
        today_date = datetime.strptime(today, "%Y-%m-%d").date()

    checkin_set = set(checkin_dates)
    dates_to_show = [today_date - timedelta(days=i) for i in range(days - 1, -1, -1)]
    first_monday = dates_to_show[0] - timedelta(days=dates_to_show[0].weekday())

    # One row per week, Monday first
    weeks: list[list[str | None]] = []
    for day in dates_to_show:
        week_num = (day - first_monday).days // 7
        while week_num >= len(weeks):
            weeks.append([None] * 7)
        weeks[week_num][day.weekday()] = "[*]" if day.isoformat() in checkin_set else "[ ]"

    print("Recent Activity:")
    print("  " + " ".join(["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]))
    for week in weeks:
        row = "  "
        for cell in week:
            row += "    " if cell is None else cell + " "
        print(row.rstrip())
    print()


def display_achievements(achievements: list[dict], newly_unlocked: list | None = None) -> None:
    """
    Display achievements with their unlock status.

    Args:
        achievements: List from get_all_achievements_status()
        newly_unlocked: Achievements unlocked just now, highlighted first
    """
    for achievement in newly_unlocked or []:
        print(f"🎉 Unlocked {achievement.icon} {achievement.name} (+{achievement.exp_reward} exp)")
    if newly_unlocked:
        print()

    unlocked = sum(1 for a in achievements if a["unlocked"])
    print(f"🏅 Achievements: {unlocked}/{len(achievements)}")
    for achievement in achievements:
        mark = achievement["icon"] if achievement["unlocked"] else "🔒"
        print(f"   {mark} {achievement['name']:<22} {achievement['description']}")
    print()
