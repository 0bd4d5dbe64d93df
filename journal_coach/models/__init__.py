"""Pydantic models shared by the engine components"""
from journal_coach.models.progress import UserProgress, XPAward, XPSource
from journal_coach.models.artifact import ArtifactKind, CompletionOutcome, DailyArtifact
from journal_coach.models.journal import JournalEntry
from journal_coach.models.report import ReportSnapshot, XPSeriesPoint
from journal_coach.models.community import CommunityPost, LikeOutcome, UnlikeOutcome

__all__ = [
    "UserProgress",
    "XPAward",
    "XPSource",
    "ArtifactKind",
    "CompletionOutcome",
    "DailyArtifact",
    "JournalEntry",
    "ReportSnapshot",
    "XPSeriesPoint",
    "CommunityPost",
    "LikeOutcome",
    "UnlikeOutcome",
]
