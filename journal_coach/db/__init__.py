"""Progress store adapter: the engine's only path to persistence"""
from journal_coach.db.store import ProgressStore

__all__ = ["ProgressStore"]
