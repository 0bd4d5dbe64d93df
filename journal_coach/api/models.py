"""Pydantic models for API request/response validation"""
from typing import Optional, List, Dict, Union
from pydantic import BaseModel, Field
from datetime import date, datetime

from journal_coach.models import ArtifactKind, CompletionOutcome, LikeOutcome, UnlikeOutcome


class CreateUserRequest(BaseModel):
    """Request to open a user account"""
    user_id: str = Field(..., min_length=1, description="User identifier")
    display_name: Optional[str] = Field(default=None, description="Name shown on posts and the leaderboard")


class ProgressResponse(BaseModel):
    """Response with XP, level and streak"""
    user_id: str
    display_name: Optional[str] = None
    xp: int
    level: int
    xp_in_current_level: int
    xp_to_next_level: int
    badges: int
    streak: int
    last_activity_date: Optional[date] = None
    total_entries: int


class JournalRequest(BaseModel):
    """Request to submit a journal entry"""
    answers: List[str] = Field(..., description="Answers to the day's questions")
    questions: Optional[List[str]] = Field(default=None, description="Questions that were answered")
    share: bool = Field(default=False, description="Publish the entry to the community feed")
    display_name: Optional[str] = Field(default=None, description="Author name for the shared post")
    entry_id: Optional[str] = Field(
        default=None,
        min_length=1,
        max_length=64,
        description="Client-chosen entry id; resubmitting with the same id credits the entry once"
    )


class JournalResponse(BaseModel):
    """Response after a journal submission"""
    entry_id: str
    summary: str
    xp_awarded: int
    xp: int
    level: int
    leveled_up: bool
    streak: int
    message: str
    post_id: Optional[str] = None


class DailyArtifactResponse(BaseModel):
    """Today's challenge or question set"""
    user_id: str
    day: date
    kind: ArtifactKind
    content: List[str]
    completed: bool
    is_fallback: bool


class ChallengeCompletionResponse(BaseModel):
    """Response after completing the day's challenge"""
    outcome: CompletionOutcome
    xp_awarded: int
    xp: int
    level: int
    leveled_up: bool


class ReportRequest(BaseModel):
    """Request to generate a report"""
    window_days: int = Field(default=7, ge=1, le=365, description="Trailing window length in days")


class PostResponse(BaseModel):
    """A community post as shown in the feed"""
    id: str
    author_id: str
    author_name: str
    journal_id: Optional[str] = None
    text: str
    summary: str
    created_at: datetime
    like_count: int


class LikeResponse(BaseModel):
    """Response after a like or unlike"""
    post_id: str
    outcome: Union[LikeOutcome, UnlikeOutcome]
    like_count: int


class ChatRequest(BaseModel):
    """Request model for chat endpoint"""
    message: str = Field(..., description="User message text")
    message_history: Optional[List[Dict[str, str]]] = Field(
        default=None,
        description="Optional message history for context"
    )


class ChatResponse(BaseModel):
    """Response model for chat endpoint"""
    response: str = Field(..., description="Mentor's response")
    timestamp: datetime = Field(..., description="Response timestamp")
    user_id: str = Field(..., description="User identifier")


class HealthCheckResponse(BaseModel):
    """Health check response"""
    status: str = Field(..., description="Service status")
    store: str = Field(..., description="Store status")
    timestamp: datetime = Field(..., description="Check timestamp")
