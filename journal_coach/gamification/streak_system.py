"""
Journaling Streak Rules

Streak-continuity rule, evaluated on day keys (see utils.datetime_helpers):
- No previous activity: streak starts at 1
- Same day as the last activity: unchanged (repeat entries don't inflate it)
- Next day: streak + 1
- Gap of 2 or more days: reset to 1
- Earlier than the last activity (out-of-order timestamp): unchanged, and the
  stored last activity date is kept
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional

from journal_coach.utils.datetime_helpers import day_gap


class StreakChange(str, Enum):
    STARTED = "started"
    SAME_DAY = "same_day"
    CONTINUED = "continued"
    RESET = "reset"
    OUT_OF_ORDER = "out_of_order"


@dataclass(frozen=True)
class StreakTransition:
    """New streak state for one activity"""
    streak: int
    last_activity_date: Optional[date]
    change: StreakChange


def compute_streak_transition(
    current_streak: int,
    last_activity_date: Optional[date],
    activity_date: date,
) -> StreakTransition:
    """
    Apply the streak-continuity rule to one activity

    Args:
        current_streak: Streak on record
        last_activity_date: Day key of the last counted activity, or None
        activity_date: Day key of this activity

    Returns:
        StreakTransition with the streak and last activity date to store
    """
    if last_activity_date is None:
        return StreakTransition(1, activity_date, StreakChange.STARTED)

    gap = day_gap(last_activity_date, activity_date)

    if gap < 0:
        return StreakTransition(current_streak, last_activity_date, StreakChange.OUT_OF_ORDER)
    if gap == 0:
        return StreakTransition(current_streak, last_activity_date, StreakChange.SAME_DAY)
    if gap == 1:
        return StreakTransition(current_streak + 1, activity_date, StreakChange.CONTINUED)
    return StreakTransition(1, activity_date, StreakChange.RESET)


def format_streak_message(transition: StreakTransition, previous_streak: int) -> str:
    """User-facing line describing a streak update"""
    if transition.change == StreakChange.STARTED:
        return "Streak started! Day 1 🎉"
    if transition.change == StreakChange.RESET:
        return f"Streak reset. Previous: {previous_streak} days. Starting fresh! Day 1 💪"
    return f"Streak continues! Day {transition.streak} 🔥"
