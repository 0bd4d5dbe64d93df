"""
XP and Leveling System

Leveling Curve:
- Flat 100 XP per level: level = floor(xp / 100) + 1
- Level is always derived from total XP, never stored on its own
- One badge per completed level: badges = floor(xp / 100)

XP Award Rules:
- Journal submission: 10 XP
- Daily challenge completion: 20 XP (once per day)
"""

from typing import Dict

JOURNAL_SUBMISSION_XP = 10
CHALLENGE_COMPLETION_XP = 20
XP_PER_LEVEL = 100


def get_level(xp: int) -> int:
    """Level for a total XP value"""
    if xp < 0:
        raise ValueError(f"XP cannot be negative: {xp}")
    return xp // XP_PER_LEVEL + 1


def get_badge_count(xp: int) -> int:
    """Badges shown on the dashboard, one per level completed"""
    return get_level(xp) - 1


def calculate_level_from_xp(total_xp: int) -> Dict[str, int]:
    """
    Calculate level and progress within it from total XP

    Returns:
        {
            'current_level': int,
            'xp_in_current_level': int,
            'xp_to_next_level': int,
            'total_xp_for_next_level': int
        }
    """
    level = get_level(total_xp)
    xp_in_level = total_xp % XP_PER_LEVEL

    return {
        "current_level": level,
        "xp_in_current_level": xp_in_level,
        "xp_to_next_level": XP_PER_LEVEL - xp_in_level,
        "total_xp_for_next_level": level * XP_PER_LEVEL,
    }
