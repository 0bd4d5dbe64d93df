"""
Community Engagement Tracker

Shared journal entries and their like counters. like_count always equals the
size of liked_by; both change together in one conditional store update, so a
user's repeated or concurrent likes count once.
"""

import logging
from typing import List, Optional

from journal_coach.db.store import ProgressStore
from journal_coach.exceptions import RecordNotFoundError
from journal_coach.models import CommunityPost, JournalEntry, LikeOutcome, UnlikeOutcome
from journal_coach.resilience import record_engagement_event
from journal_coach.utils.datetime_helpers import now_utc

logger = logging.getLogger(__name__)

DEFAULT_FEED_LIMIT = 50


def _post_not_found(post_id: str, operation: str, user_id: Optional[str] = None) -> RecordNotFoundError:
    return RecordNotFoundError(
        message=f"Community post {post_id} not found",
        record_type="CommunityPost",
        record_id=post_id,
        user_id=user_id,
        operation=operation
    )


class CommunityEngagementTracker:
    """Publishing, likes and moderation for community posts"""

    def __init__(self, store: ProgressStore):
        self.store = store

    async def publish(self, entry: JournalEntry, author_display_name: Optional[str] = None) -> str:
        """
        Share a journal entry and return its post id; the post starts with zero likes.

        A journal entry has at most one post, keyed by the journal id, so
        publishing the same entry again returns the existing post.
        """
        post = CommunityPost(
            id=entry.id,
            author_id=entry.user_id,
            author_name=author_display_name or "Anonymous",
            journal_id=entry.id,
            text=entry.text,
            summary=entry.summary,
            created_at=now_utc()
        )
        stored = await self.store.insert_post(post)
        logger.info(f"User {entry.user_id} shared journal {entry.id} as post {stored.id}")
        return stored.id

    async def list_posts(self, limit: int = DEFAULT_FEED_LIMIT) -> List[CommunityPost]:
        """Newest first"""
        return await self.store.list_posts(limit)

    async def get_post(self, post_id: str) -> CommunityPost:
        post = await self.store.get_post(post_id)
        if post is None:
            raise _post_not_found(post_id, "get_post")
        return post

    async def like(self, post_id: str, user_id: str) -> LikeOutcome:
        """
        Add user_id's like

        Returns:
            LIKED if the like was added, ALREADY_LIKED if it was present

        Raises:
            RecordNotFoundError: unknown post
            StoreUnavailableError: store failure
        """
        if await self.store.like_post(post_id, user_id):
            logger.info(f"User {user_id} liked post {post_id}")
            record_engagement_event("post_liked", "applied")
            return LikeOutcome.LIKED

        logger.debug(f"User {user_id} already liked post {post_id}")
        record_engagement_event("post_liked", "noop")
        return LikeOutcome.ALREADY_LIKED

    async def unlike(self, post_id: str, user_id: str) -> UnlikeOutcome:
        """
        Remove user_id's like; the count never drops below zero

        Raises:
            RecordNotFoundError: unknown post
            StoreUnavailableError: store failure
        """
        if await self.store.unlike_post(post_id, user_id):
            logger.info(f"User {user_id} unliked post {post_id}")
            record_engagement_event("post_unliked", "applied")
            return UnlikeOutcome.UNLIKED

        record_engagement_event("post_unliked", "noop")
        return UnlikeOutcome.NOT_LIKED

    async def delete(self, post_id: str) -> None:
        """
        Remove a post (moderation; the caller checks admin rights)

        Raises:
            RecordNotFoundError: unknown post
        """
        if not await self.store.delete_post(post_id):
            raise _post_not_found(post_id, "delete_post")
        logger.info(f"Community post {post_id} deleted")
