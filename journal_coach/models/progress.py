"""Progression models for gamification"""
from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional
from datetime import date, datetime


class XPSource(str, Enum):
    """What an XP award was granted for"""
    JOURNAL = "journal"
    CHALLENGE = "challenge"


class UserProgress(BaseModel):
    """A user's cumulative stats, written only by the progression ledger"""
    user_id: str
    xp: int = Field(default=0, ge=0)
    streak: int = Field(default=0, ge=0)
    last_activity_date: Optional[date] = None
    total_entries: int = Field(default=0, ge=0)
    display_name: Optional[str] = None

    @property
    def level(self) -> int:
        # Derived from xp, never stored
        from journal_coach.gamification.xp_system import get_level
        return get_level(self.xp)


class XPAward(BaseModel):
    """One row of XP history; award_key is unique per user"""
    user_id: str
    amount: int = Field(gt=0)
    source_type: XPSource
    award_key: str
    awarded_at: datetime
