"""
Engagement and progression for Journal Coach

- Progression ledger: XP, levels and journaling streaks
- Daily artifact cache: one challenge and one question set per user per day
- Report aggregator: windowed summaries with a narrative
- Community tracker: shared entries and likes
- Leaderboard
"""

from journal_coach.gamification.xp_system import get_level, get_badge_count, calculate_level_from_xp
from journal_coach.gamification.streak_system import compute_streak_transition, StreakChange
from journal_coach.gamification.ledger import ProgressionLedger, LedgerResult
from journal_coach.gamification.daily_artifacts import DailyArtifactCache
from journal_coach.gamification.reports import ReportAggregator
from journal_coach.gamification.community import CommunityEngagementTracker
from journal_coach.gamification.leaderboard import LeaderboardRow, get_leaderboard

__all__ = [
    "get_level",
    "get_badge_count",
    "calculate_level_from_xp",
    "compute_streak_transition",
    "StreakChange",
    "ProgressionLedger",
    "LedgerResult",
    "DailyArtifactCache",
    "ReportAggregator",
    "CommunityEngagementTracker",
    "LeaderboardRow",
    "get_leaderboard",
]
