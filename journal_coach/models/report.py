"""Report snapshot models"""
from pydantic import BaseModel, Field
from datetime import date, datetime


class XPSeriesPoint(BaseModel):
    """XP earned on one day of a report window"""
    day: date
    xp: int = 0


class ReportSnapshot(BaseModel):
    """Immutable aggregation of a user's journaling over a window"""
    id: str
    user_id: str
    window_start: datetime
    window_end: datetime
    entry_count: int = Field(ge=0)
    xp_delta: int = Field(ge=0)
    streak_at_generation: int = Field(ge=0)
    narrative: str
    xp_series: list[XPSeriesPoint] = Field(default_factory=list)
    created_at: datetime
