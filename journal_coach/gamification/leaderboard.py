"""Leaderboard ranking by XP"""
import logging
from typing import List, Optional

from pydantic import BaseModel

from journal_coach.db.store import ProgressStore

logger = logging.getLogger(__name__)

DEFAULT_LEADERBOARD_LIMIT = 10
MAX_LEADERBOARD_LIMIT = 100


class LeaderboardRow(BaseModel):
    rank: int
    user_id: str
    display_name: Optional[str] = None
    xp: int
    level: int
    streak: int


async def get_leaderboard(store: ProgressStore, limit: int = DEFAULT_LEADERBOARD_LIMIT) -> List[LeaderboardRow]:
    """
    Top users by XP descending, ties broken by streak then user id.

    Ranks are 1-based positions in that order.
    """
    limit = max(1, min(limit, MAX_LEADERBOARD_LIMIT))
    records = await store.list_leaderboard(limit)

    # Store already sorts; re-sorting keeps the ordering independent of the backend
    ordered = sorted(records, key=lambda p: (-p.xp, -p.streak, p.user_id))[:limit]

    return [
        LeaderboardRow(
            rank=position,
            user_id=progress.user_id,
            display_name=progress.display_name,
            xp=progress.xp,
            level=progress.level,
            streak=progress.streak
        )
        for position, progress in enumerate(ordered, start=1)
    ]
