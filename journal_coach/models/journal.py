"""Journal entry model"""
from pydantic import BaseModel, Field
from datetime import datetime


class JournalEntry(BaseModel):
    """A submitted journal entry, immutable once created"""
    id: str
    user_id: str
    text: str
    questions: list[str] = Field(default_factory=list)
    answers: list[str] = Field(default_factory=list)
    summary: str = ""
    created_at: datetime
    shared: bool = False
