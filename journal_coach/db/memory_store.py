"""
In-process progress store

Keeps every collection in dictionaries guarded by a single asyncio.Lock, so each
operation is atomic with respect to other coroutines on the same event loop.
State is NOT persisted; use it for local runs (STORE_BACKEND=memory) and tests.
"""

import asyncio
import logging
from datetime import date, datetime
from typing import Optional

from journal_coach.config import STORE_TIMEOUT_SECONDS
from journal_coach.db.store import store_operation
from journal_coach.exceptions import RecordNotFoundError
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


class MemoryStore:
    """In-memory store with the same atomicity contract as PostgresStore"""

    def __init__(self, timeout: float = STORE_TIMEOUT_SECONDS):
        self.timeout = timeout
        self._lock = asyncio.Lock()
        self._progress: dict[str, UserProgress] = {}
        self._awards: dict[str, dict[str, XPAward]] = {}
        self._artifacts: dict[tuple[str, date, ArtifactKind], DailyArtifact] = {}
        self._journals: dict[str, list[JournalEntry]] = {}
        self._journal_ids: dict[str, JournalEntry] = {}
        self._reports: dict[str, list[ReportSnapshot]] = {}
        self._posts: dict[str, CommunityPost] = {}
        logger.warning(
            "MemoryStore initialized - engagement data is NOT persisted across restarts"
        )

    # ==========================================
    # Progress
    # ==========================================

    @store_operation("get_progress")
    async def get_progress(self, user_id: str) -> Optional[UserProgress]:
        progress = self._progress.get(user_id)
        return progress.model_copy() if progress else None

    @store_operation("create_progress")
    async def create_progress(self, user_id: str, display_name: Optional[str] = None) -> UserProgress:
        async with self._lock:
            if user_id not in self._progress:
                self._progress[user_id] = UserProgress(user_id=user_id, display_name=display_name)
                self._awards[user_id] = {}
                logger.info(f"Created progress record for user {user_id}")
            return self._progress[user_id].model_copy()

    @store_operation("apply_submission")
    async def apply_submission(
        self,
        user_id: str,
        expected_last_activity_date: Optional[date],
        streak: int,
        last_activity_date: Optional[date],
        award: XPAward,
    ) -> Optional[tuple[UserProgress, bool]]:
        async with self._lock:
            current = self._progress.get(user_id)
            if current is None or current.last_activity_date != expected_last_activity_date:
                return None
            if award.award_key in self._awards[user_id]:
                return current.model_copy(), False

            updated = current.model_copy(update={
                "xp": current.xp + award.amount,
                "total_entries": current.total_entries + 1,
                "streak": streak,
                "last_activity_date": last_activity_date,
            })
            self._progress[user_id] = updated
            self._awards[user_id][award.award_key] = award
            return updated.model_copy(), True

    @store_operation("award_xp_once")
    async def award_xp_once(self, user_id: str, award: XPAward) -> tuple[UserProgress, bool]:
        async with self._lock:
            current = self._progress.get(user_id)
            if current is None:
                raise RecordNotFoundError(
                    message=f"No progress record for user {user_id}",
                    record_type="UserProgress",
                    record_id=user_id,
                    user_id=user_id,
                    operation="award_xp_once"
                )
            if award.award_key in self._awards[user_id]:
                return current.model_copy(), False

            updated = current.model_copy(update={"xp": current.xp + award.amount})
            self._progress[user_id] = updated
            self._awards[user_id][award.award_key] = award
            return updated.model_copy(), True

    @store_operation("list_xp_awards")
    async def list_xp_awards(self, user_id: str, start: datetime, end: datetime) -> list[XPAward]:
        awards = [
            a for a in self._awards.get(user_id, {}).values()
            if start <= a.awarded_at <= end
        ]
        return sorted(awards, key=lambda a: a.awarded_at)

    @store_operation("list_leaderboard")
    async def list_leaderboard(self, limit: int) -> list[UserProgress]:
        ranked = sorted(
            self._progress.values(),
            key=lambda p: (-p.xp, -p.streak, p.user_id)
        )
        return [p.model_copy() for p in ranked[:limit]]

    # ==========================================
    # Daily artifacts
    # ==========================================

    @store_operation("get_artifact")
    async def get_artifact(self, user_id: str, day: date, kind: ArtifactKind) -> Optional[DailyArtifact]:
        artifact = self._artifacts.get((user_id, day, kind))
        return artifact.model_copy(deep=True) if artifact else None

    @store_operation("create_artifact_if_absent")
    async def create_artifact_if_absent(self, artifact: DailyArtifact) -> DailyArtifact:
        key = (artifact.user_id, artifact.day, artifact.kind)
        async with self._lock:
            existing = self._artifacts.get(key)
            if existing is None:
                self._artifacts[key] = artifact.model_copy(deep=True)
                existing = self._artifacts[key]
            return existing.model_copy(deep=True)

    @store_operation("complete_challenge")
    async def complete_challenge(self, user_id: str, day: date) -> bool:
        async with self._lock:
            artifact = self._artifacts.get((user_id, day, ArtifactKind.CHALLENGE))
            if artifact is None:
                raise RecordNotFoundError(
                    message=f"No challenge for user {user_id} on {day}",
                    record_type="DailyArtifact",
                    record_id=f"{user_id}:{day}:challenge",
                    user_id=user_id,
                    operation="complete_challenge"
                )
            if artifact.completed:
                return False
            artifact.completed = True
            return True

    # ==========================================
    # Journals
    # ==========================================

    @store_operation("append_journal_entry")
    async def append_journal_entry(self, entry: JournalEntry) -> JournalEntry:
        async with self._lock:
            existing = self._journal_ids.get(entry.id)
            if existing is None:
                existing = entry.model_copy(deep=True)
                self._journal_ids[entry.id] = existing
                self._journals.setdefault(entry.user_id, []).append(existing)
            return existing.model_copy(deep=True)

    @store_operation("list_journal_entries")
    async def list_journal_entries(
        self,
        user_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[JournalEntry]:
        entries = [
            e for e in self._journals.get(user_id, [])
            if (start is None or e.created_at >= start) and (end is None or e.created_at <= end)
        ]
        return sorted(entries, key=lambda e: e.created_at)

    # ==========================================
    # Reports
    # ==========================================

    @store_operation("insert_report")
    async def insert_report(self, report: ReportSnapshot) -> ReportSnapshot:
        async with self._lock:
            self._reports.setdefault(report.user_id, []).append(report.model_copy(deep=True))
            return report

    @store_operation("list_reports")
    async def list_reports(self, user_id: str) -> list[ReportSnapshot]:
        reports = sorted(
            self._reports.get(user_id, []),
            key=lambda r: r.created_at,
            reverse=True
        )
        return [r.model_copy(deep=True) for r in reports]

    @store_operation("get_report")
    async def get_report(self, user_id: str, report_id: str) -> Optional[ReportSnapshot]:
        for report in self._reports.get(user_id, []):
            if report.id == report_id:
                return report.model_copy(deep=True)
        return None

    # ==========================================
    # Community
    # ==========================================

    @store_operation("insert_post")
    async def insert_post(self, post: CommunityPost) -> CommunityPost:
        async with self._lock:
            if post.id not in self._posts:
                self._posts[post.id] = post.model_copy(deep=True)
            return self._posts[post.id].model_copy(deep=True)

    @store_operation("get_post")
    async def get_post(self, post_id: str) -> Optional[CommunityPost]:
        post = self._posts.get(post_id)
        return post.model_copy(deep=True) if post else None

    @store_operation("list_posts")
    async def list_posts(self, limit: int) -> list[CommunityPost]:
        posts = sorted(self._posts.values(), key=lambda p: p.created_at, reverse=True)
        return [p.model_copy(deep=True) for p in posts[:limit]]

    @store_operation("like_post")
    async def like_post(self, post_id: str, user_id: str) -> bool:
        async with self._lock:
            post = self._require_post(post_id, operation="like_post")
            if user_id in post.liked_by:
                return False
            post.liked_by.add(user_id)
            post.like_count += 1
            return True

    @store_operation("unlike_post")
    async def unlike_post(self, post_id: str, user_id: str) -> bool:
        async with self._lock:
            post = self._require_post(post_id, operation="unlike_post")
            if user_id not in post.liked_by:
                return False
            post.liked_by.discard(user_id)
            post.like_count = max(post.like_count - 1, 0)
            return True

    @store_operation("delete_post")
    async def delete_post(self, post_id: str) -> bool:
        async with self._lock:
            return self._posts.pop(post_id, None) is not None

    def _require_post(self, post_id: str, operation: str) -> CommunityPost:
        post = self._posts.get(post_id)
        if post is None:
            raise RecordNotFoundError(
                message=f"Community post {post_id} not found",
                record_type="CommunityPost",
                record_id=post_id,
                operation=operation
            )
        return post
