"""Community sharing models"""
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field
from datetime import datetime


class LikeOutcome(str, Enum):
    """Result of a like request"""
    LIKED = "liked"
    ALREADY_LIKED = "already_liked"


class UnlikeOutcome(str, Enum):
    """Result of an unlike request"""
    UNLIKED = "unliked"
    NOT_LIKED = "not_liked"


class CommunityPost(BaseModel):
    """A shared journal entry with its like counter"""
    id: str
    author_id: str
    author_name: str
    journal_id: Optional[str] = None
    text: str = ""
    summary: str = ""
    created_at: datetime
    like_count: int = Field(default=0, ge=0)
    liked_by: set[str] = Field(default_factory=set)
