"""
Experience and level rules.
"""

EXP_PER_LEVEL = 100


def level_threshold(level: int) -> int:
    """Experience needed to leave the given level."""
    return (level or 1) * EXP_PER_LEVEL


def apply_level_ups(exp: int, level: int, amount: int) -> tuple[int, int]:
    """
    Add experience and roll any overflow into new levels.

    Reaching level N + 1 costs N * 100 experience; the stored experience is
    what remains towards the next level.

    Args:
        exp: Current experience towards the next level
        level: Current level (1 or more)
        amount: Experience to add

    Returns:
        Tuple of (new experience, new level)
    """
    new_exp = (exp or 0) + amount
    new_level = level or 1

    while new_exp >= level_threshold(new_level):
        new_exp -= level_threshold(new_level)
        new_level += 1

    return new_exp, new_level


def refund_experience(exp: int, amount: int) -> int:
    """Remove experience without dropping levels or going below zero."""
    return max(0, (exp or 0) - amount)
