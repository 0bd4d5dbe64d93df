"""
Progress Store Adapter

Narrow interface over the document store used by the engine components.

Atomicity contract (every implementation must honour it):
- create_progress / create_artifact_if_absent are create-if-absent and return
  whichever record won
- apply_submission is a single conditional update keyed by the previously
  read last_activity_date; xp and total_entries change as increments, at
  most once per (user_id, award_key)
- append_journal_entry / insert_post are insert-if-absent on the record id and
  return the stored record
- award_xp_once inserts the award and increments xp in one unit, at most once
  per (user_id, award_key)
- like_post / unlike_post check membership and mutate in one conditional update

Every operation may raise StoreUnavailableError. None retries internally.
"""

import asyncio
import logging
from datetime import date, datetime
from functools import wraps
from typing import Any, Callable, Optional, Protocol, TypeVar

from journal_coach.exceptions import JournalCoachError, wrap_external_exception
from journal_coach.models import (
    ArtifactKind,
    CommunityPost,
    DailyArtifact,
    JournalEntry,
    ReportSnapshot,
    UserProgress,
    XPAward,
)

logger = logging.getLogger(__name__)

T = TypeVar('T')


class ProgressStore(Protocol):
    """Operations the engine needs from persistence"""

    # Progress
    async def get_progress(self, user_id: str) -> Optional[UserProgress]: ...

    async def create_progress(self, user_id: str, display_name: Optional[str] = None) -> UserProgress: ...

    async def apply_submission(
        self,
        user_id: str,
        expected_last_activity_date: Optional[date],
        streak: int,
        last_activity_date: Optional[date],
        award: XPAward,
    ) -> Optional[tuple[UserProgress, bool]]: ...

    async def award_xp_once(self, user_id: str, award: XPAward) -> tuple[UserProgress, bool]: ...

    async def list_xp_awards(self, user_id: str, start: datetime, end: datetime) -> list[XPAward]: ...

    async def list_leaderboard(self, limit: int) -> list[UserProgress]: ...

    # Daily artifacts
    async def get_artifact(self, user_id: str, day: date, kind: ArtifactKind) -> Optional[DailyArtifact]: ...

    async def create_artifact_if_absent(self, artifact: DailyArtifact) -> DailyArtifact: ...

    async def complete_challenge(self, user_id: str, day: date) -> bool: ...

    # Journals
    async def append_journal_entry(self, entry: JournalEntry) -> JournalEntry: ...

    async def list_journal_entries(
        self,
        user_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[JournalEntry]: ...

    # Reports
    async def insert_report(self, report: ReportSnapshot) -> ReportSnapshot: ...

    async def list_reports(self, user_id: str) -> list[ReportSnapshot]: ...

    async def get_report(self, user_id: str, report_id: str) -> Optional[ReportSnapshot]: ...

    # Community
    async def insert_post(self, post: CommunityPost) -> CommunityPost: ...

    async def get_post(self, post_id: str) -> Optional[CommunityPost]: ...

    async def list_posts(self, limit: int) -> list[CommunityPost]: ...

    async def like_post(self, post_id: str, user_id: str) -> bool: ...

    async def unlike_post(self, post_id: str, user_id: str) -> bool: ...

    async def delete_post(self, post_id: str) -> bool: ...


def store_operation(operation: str) -> Callable:
    """
    Decorator for store methods: bounds the call with the store's timeout and
    converts driver errors into the exception hierarchy.

    The wrapped method's instance must expose a `timeout` attribute (seconds).

    Example:
        @store_operation("like_post")
        async def like_post(self, post_id, user_id):
            ...
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(self, *args: Any, **kwargs: Any) -> T:
            try:
                return await asyncio.wait_for(func(self, *args, **kwargs), timeout=self.timeout)
            except JournalCoachError:
                raise
            except Exception as e:
                user_id = kwargs.get("user_id")
                raise wrap_external_exception(
                    e,
                    operation=operation,
                    user_id=user_id,
                    context={"store": type(self).__name__}
                ) from e
        return wrapper
    return decorator
