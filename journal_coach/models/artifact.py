"""Daily artifact models (challenges and question sets)"""
from enum import Enum
from pydantic import BaseModel, Field
from datetime import date, datetime


class ArtifactKind(str, Enum):
    """Kinds of per-day generated content"""
    CHALLENGE = "challenge"
    QUESTION_SET = "question_set"


class CompletionOutcome(str, Enum):
    """Result of marking a challenge completed"""
    COMPLETED = "completed"
    ALREADY_COMPLETED = "already_completed"


class DailyArtifact(BaseModel):
    """Generated content cached for one user and one day"""
    user_id: str
    day: date
    kind: ArtifactKind
    content: list[str] = Field(default_factory=list)
    completed: bool = False
    is_fallback: bool = False
    created_at: datetime

    @property
    def text(self) -> str:
        """Challenge text (first content line)"""
        return self.content[0] if self.content else ""
