"""PostgreSQL implementation of the progress store"""
import logging
from datetime import date, datetime
from typing import Optional

from psycopg.types.json import Jsonb

from journal_coach.config import STORE_TIMEOUT_SECONDS
from journal_coach.db.connection import Database, db
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

PROGRESS_COLUMNS = "user_id, display_name, xp, streak, last_activity_date, total_entries"
ARTIFACT_COLUMNS = "user_id, day, kind, content, completed, is_fallback, created_at"
JOURNAL_COLUMNS = "id, user_id, text, questions, answers, summary, created_at, shared"
REPORT_COLUMNS = (
    "id, user_id, window_start, window_end, entry_count, xp_delta, "
    "streak_at_generation, narrative, xp_series, created_at"
)
POST_COLUMNS = "id, author_id, author_name, journal_id, text, summary, created_at, like_count, liked_by"


def _post_from_row(row: dict) -> CommunityPost:
    data = dict(row)
    data["liked_by"] = set(data.get("liked_by") or [])
    return CommunityPost(**data)


class PostgresStore:
    """
    Progress store backed by PostgreSQL (schema: migrations/001_engagement_schema.sql)

    Conditional writes are expressed in SQL so that the check and the mutation
    happen in one statement (or one transaction) on the server.
    """

    def __init__(self, database: Database = db, timeout: float = STORE_TIMEOUT_SECONDS):
        self.db = database
        self.timeout = timeout

    # ==========================================
    # Progress
    # ==========================================

    @store_operation("get_progress")
    async def get_progress(self, user_id: str) -> Optional[UserProgress]:
        async with self.db.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    f"SELECT {PROGRESS_COLUMNS} FROM user_progress WHERE user_id = %s",
                    (user_id,)
                )
                row = await cur.fetchone()
                return UserProgress(**row) if row else None

    @store_operation("create_progress")
    async def create_progress(self, user_id: str, display_name: Optional[str] = None) -> UserProgress:
        """Create a zeroed progress record (returns the existing one if present)"""
        async with self.db.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    f"""
                    INSERT INTO user_progress (user_id, display_name)
                    VALUES (%s, %s)
                    ON CONFLICT (user_id) DO NOTHING
                    RETURNING {PROGRESS_COLUMNS}
                    """,
                    (user_id, display_name)
                )
                row = await cur.fetchone()
                if row is None:
                    await cur.execute(
                        f"SELECT {PROGRESS_COLUMNS} FROM user_progress WHERE user_id = %s",
                        (user_id,)
                    )
                    row = await cur.fetchone()
                else:
                    logger.info(f"Created progress record for user {user_id}")
                await conn.commit()
                return UserProgress(**row)

    @store_operation("apply_submission")
    async def apply_submission(
        self,
        user_id: str,
        expected_last_activity_date: Optional[date],
        streak: int,
        last_activity_date: Optional[date],
        award: XPAward,
    ) -> Optional[tuple[UserProgress, bool]]:
        """
        Apply a journal submission if last_activity_date is still the value
        the caller read.

        Returns None on conflict, (current, False) when award_key was already
        credited, otherwise (updated, True).
        """
        async with self.db.connection() as conn:
            async with conn.transaction():
                async with conn.cursor() as cur:
                    await cur.execute(
                        f"""
                        SELECT {PROGRESS_COLUMNS}
                        FROM user_progress
                        WHERE user_id = %s
                          AND last_activity_date IS NOT DISTINCT FROM %s
                        FOR UPDATE
                        """,
                        (user_id, expected_last_activity_date)
                    )
                    row = await cur.fetchone()
                    if row is None:
                        return None

                    await cur.execute(
                        """
                        INSERT INTO xp_awards (user_id, amount, source_type, award_key, awarded_at)
                        VALUES (%s, %s, %s, %s, %s)
                        ON CONFLICT (user_id, award_key) DO NOTHING
                        RETURNING id
                        """,
                        (user_id, award.amount, award.source_type.value, award.award_key, award.awarded_at)
                    )
                    if await cur.fetchone() is None:
                        return UserProgress(**row), False

                    await cur.execute(
                        f"""
                        UPDATE user_progress
                        SET xp = xp + %s,
                            total_entries = total_entries + 1,
                            streak = %s,
                            last_activity_date = %s,
                            updated_at = CURRENT_TIMESTAMP
                        WHERE user_id = %s
                        RETURNING {PROGRESS_COLUMNS}
                        """,
                        (award.amount, streak, last_activity_date, user_id)
                    )
                    updated = await cur.fetchone()
                    return UserProgress(**updated), True

    @store_operation("award_xp_once")
    async def award_xp_once(self, user_id: str, award: XPAward) -> tuple[UserProgress, bool]:
        """Insert the award and add its XP, unless award_key was already used"""
        async with self.db.connection() as conn:
            async with conn.transaction():
                async with conn.cursor() as cur:
                    await cur.execute(
                        f"SELECT {PROGRESS_COLUMNS} FROM user_progress WHERE user_id = %s FOR UPDATE",
                        (user_id,)
                    )
                    row = await cur.fetchone()
                    if row is None:
                        raise RecordNotFoundError(
                            message=f"No progress record for user {user_id}",
                            record_type="UserProgress",
                            record_id=user_id,
                            user_id=user_id,
                            operation="award_xp_once"
                        )

                    await cur.execute(
                        """
                        INSERT INTO xp_awards (user_id, amount, source_type, award_key, awarded_at)
                        VALUES (%s, %s, %s, %s, %s)
                        ON CONFLICT (user_id, award_key) DO NOTHING
                        RETURNING id
                        """,
                        (user_id, award.amount, award.source_type.value, award.award_key, award.awarded_at)
                    )
                    if await cur.fetchone() is None:
                        return UserProgress(**row), False

                    await cur.execute(
                        f"""
                        UPDATE user_progress
                        SET xp = xp + %s, updated_at = CURRENT_TIMESTAMP
                        WHERE user_id = %s
                        RETURNING {PROGRESS_COLUMNS}
                        """,
                        (award.amount, user_id)
                    )
                    updated = await cur.fetchone()
                    return UserProgress(**updated), True

    @store_operation("list_xp_awards")
    async def list_xp_awards(self, user_id: str, start: datetime, end: datetime) -> list[XPAward]:
        async with self.db.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    SELECT user_id, amount, source_type, award_key, awarded_at
                    FROM xp_awards
                    WHERE user_id = %s AND awarded_at >= %s AND awarded_at <= %s
                    ORDER BY awarded_at
                    """,
                    (user_id, start, end)
                )
                rows = await cur.fetchall()
                return [XPAward(**row) for row in rows]

    @store_operation("list_leaderboard")
    async def list_leaderboard(self, limit: int) -> list[UserProgress]:
        async with self.db.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    f"""
                    SELECT {PROGRESS_COLUMNS}
                    FROM user_progress
                    ORDER BY xp DESC, streak DESC, user_id
                    LIMIT %s
                    """,
                    (limit,)
                )
                rows = await cur.fetchall()
                return [UserProgress(**row) for row in rows]

    # ==========================================
    # Daily artifacts
    # ==========================================

    @store_operation("get_artifact")
    async def get_artifact(self, user_id: str, day: date, kind: ArtifactKind) -> Optional[DailyArtifact]:
        async with self.db.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    f"""
                    SELECT {ARTIFACT_COLUMNS}
                    FROM daily_artifacts
                    WHERE user_id = %s AND day = %s AND kind = %s
                    """,
                    (user_id, day, kind.value)
                )
                row = await cur.fetchone()
                return DailyArtifact(**row) if row else None

    @store_operation("create_artifact_if_absent")
    async def create_artifact_if_absent(self, artifact: DailyArtifact) -> DailyArtifact:
        """Insert unless (user, day, kind) exists; return the persisted artifact"""
        async with self.db.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    f"""
                    INSERT INTO daily_artifacts (user_id, day, kind, content, completed, is_fallback, created_at)
                    VALUES (%s, %s, %s, %s, %s, %s, %s)
                    ON CONFLICT (user_id, day, kind) DO NOTHING
                    RETURNING {ARTIFACT_COLUMNS}
                    """,
                    (
                        artifact.user_id,
                        artifact.day,
                        artifact.kind.value,
                        artifact.content,
                        artifact.completed,
                        artifact.is_fallback,
                        artifact.created_at,
                    )
                )
                row = await cur.fetchone()
                if row is None:
                    # Lost the race: someone else created it first
                    await cur.execute(
                        f"""
                        SELECT {ARTIFACT_COLUMNS}
                        FROM daily_artifacts
                        WHERE user_id = %s AND day = %s AND kind = %s
                        """,
                        (artifact.user_id, artifact.day, artifact.kind.value)
                    )
                    row = await cur.fetchone()
                await conn.commit()
                return DailyArtifact(**row)

    @store_operation("complete_challenge")
    async def complete_challenge(self, user_id: str, day: date) -> bool:
        """Flip completed false->true. False if it was already true."""
        async with self.db.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    UPDATE daily_artifacts
                    SET completed = TRUE
                    WHERE user_id = %s AND day = %s AND kind = %s AND completed = FALSE
                    RETURNING user_id
                    """,
                    (user_id, day, ArtifactKind.CHALLENGE.value)
                )
                transitioned = await cur.fetchone() is not None
                await conn.commit()
                if transitioned:
                    return True

                await cur.execute(
                    "SELECT 1 FROM daily_artifacts WHERE user_id = %s AND day = %s AND kind = %s",
                    (user_id, day, ArtifactKind.CHALLENGE.value)
                )
                if await cur.fetchone() is None:
                    raise RecordNotFoundError(
                        message=f"No challenge for user {user_id} on {day}",
                        record_type="DailyArtifact",
                        record_id=f"{user_id}:{day}:challenge",
                        user_id=user_id,
                        operation="complete_challenge"
                    )
                return False

    # ==========================================
    # Journals
    # ==========================================

    @store_operation("append_journal_entry")
    async def append_journal_entry(self, entry: JournalEntry) -> JournalEntry:
        """Insert the entry unless its id exists; returns the stored entry"""
        async with self.db.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    f"""
                    INSERT INTO journal_entries (id, user_id, text, questions, answers, summary, created_at, shared)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                    ON CONFLICT (id) DO NOTHING
                    RETURNING {JOURNAL_COLUMNS}
                    """,
                    (
                        entry.id,
                        entry.user_id,
                        entry.text,
                        entry.questions,
                        entry.answers,
                        entry.summary,
                        entry.created_at,
                        entry.shared,
                    )
                )
                row = await cur.fetchone()
                if row is None:
                    await cur.execute(
                        f"SELECT {JOURNAL_COLUMNS} FROM journal_entries WHERE id = %s",
                        (entry.id,)
                    )
                    row = await cur.fetchone()
                    logger.info(f"Journal entry {entry.id} already stored")
                await conn.commit()
                return JournalEntry(**row)

    @store_operation("list_journal_entries")
    async def list_journal_entries(
        self,
        user_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[JournalEntry]:
        """Entries ordered oldest first, optionally bounded (inclusive)"""
        async with self.db.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    f"""
                    SELECT {JOURNAL_COLUMNS}
                    FROM journal_entries
                    WHERE user_id = %s
                      AND (%s::timestamptz IS NULL OR created_at >= %s)
                      AND (%s::timestamptz IS NULL OR created_at <= %s)
                    ORDER BY created_at
                    """,
                    (user_id, start, start, end, end)
                )
                rows = await cur.fetchall()
                return [JournalEntry(**row) for row in rows]

    # ==========================================
    # Reports
    # ==========================================

    @store_operation("insert_report")
    async def insert_report(self, report: ReportSnapshot) -> ReportSnapshot:
        async with self.db.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    INSERT INTO report_snapshots (
                        id, user_id, window_start, window_end, entry_count, xp_delta,
                        streak_at_generation, narrative, xp_series, created_at
                    )
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                    """,
                    (
                        report.id,
                        report.user_id,
                        report.window_start,
                        report.window_end,
                        report.entry_count,
                        report.xp_delta,
                        report.streak_at_generation,
                        report.narrative,
                        Jsonb([point.model_dump(mode="json") for point in report.xp_series]),
                        report.created_at,
                    )
                )
                await conn.commit()
                return report

    @store_operation("list_reports")
    async def list_reports(self, user_id: str) -> list[ReportSnapshot]:
        async with self.db.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    f"""
                    SELECT {REPORT_COLUMNS}
                    FROM report_snapshots
                    WHERE user_id = %s
                    ORDER BY created_at DESC
                    """,
                    (user_id,)
                )
                rows = await cur.fetchall()
                return [ReportSnapshot(**row) for row in rows]

    @store_operation("get_report")
    async def get_report(self, user_id: str, report_id: str) -> Optional[ReportSnapshot]:
        async with self.db.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    f"SELECT {REPORT_COLUMNS} FROM report_snapshots WHERE user_id = %s AND id = %s",
                    (user_id, report_id)
                )
                row = await cur.fetchone()
                return ReportSnapshot(**row) if row else None

    # ==========================================
    # Community
    # ==========================================

    @store_operation("insert_post")
    async def insert_post(self, post: CommunityPost) -> CommunityPost:
        """Insert the post unless its id exists; returns the stored post"""
        async with self.db.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    f"""
                    INSERT INTO community_posts (
                        id, author_id, author_name, journal_id, text, summary, created_at, like_count, liked_by
                    )
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                    ON CONFLICT (id) DO NOTHING
                    RETURNING {POST_COLUMNS}
                    """,
                    (
                        post.id,
                        post.author_id,
                        post.author_name,
                        post.journal_id,
                        post.text,
                        post.summary,
                        post.created_at,
                        post.like_count,
                        sorted(post.liked_by),
                    )
                )
                row = await cur.fetchone()
                if row is None:
                    await cur.execute(
                        f"SELECT {POST_COLUMNS} FROM community_posts WHERE id = %s",
                        (post.id,)
                    )
                    row = await cur.fetchone()
                await conn.commit()
                return _post_from_row(row) if row else post

    @store_operation("get_post")
    async def get_post(self, post_id: str) -> Optional[CommunityPost]:
        async with self.db.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    f"SELECT {POST_COLUMNS} FROM community_posts WHERE id = %s",
                    (post_id,)
                )
                row = await cur.fetchone()
                return _post_from_row(row) if row else None

    @store_operation("list_posts")
    async def list_posts(self, limit: int) -> list[CommunityPost]:
        async with self.db.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    f"""
                    SELECT {POST_COLUMNS}
                    FROM community_posts
                    ORDER BY created_at DESC
                    LIMIT %s
                    """,
                    (limit,)
                )
                rows = await cur.fetchall()
                return [_post_from_row(row) for row in rows]

    @store_operation("like_post")
    async def like_post(self, post_id: str, user_id: str) -> bool:
        """Add user to liked_by and increment like_count, only if absent"""
        async with self.db.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    UPDATE community_posts
                    SET liked_by = array_append(liked_by, %s),
                        like_count = like_count + 1
                    WHERE id = %s AND NOT (%s = ANY(liked_by))
                    RETURNING id
                    """,
                    (user_id, post_id, user_id)
                )
                liked = await cur.fetchone() is not None
                await conn.commit()
                if liked:
                    return True
                await self._require_post(cur, post_id, operation="like_post")
                return False

    @store_operation("unlike_post")
    async def unlike_post(self, post_id: str, user_id: str) -> bool:
        """Remove user from liked_by and decrement like_count, only if present"""
        async with self.db.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    UPDATE community_posts
                    SET liked_by = array_remove(liked_by, %s),
                        like_count = GREATEST(like_count - 1, 0)
                    WHERE id = %s AND %s = ANY(liked_by)
                    RETURNING id
                    """,
                    (user_id, post_id, user_id)
                )
                unliked = await cur.fetchone() is not None
                await conn.commit()
                if unliked:
                    return True
                await self._require_post(cur, post_id, operation="unlike_post")
                return False

    @store_operation("delete_post")
    async def delete_post(self, post_id: str) -> bool:
        async with self.db.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    "DELETE FROM community_posts WHERE id = %s RETURNING id",
                    (post_id,)
                )
                deleted = await cur.fetchone() is not None
                await conn.commit()
                return deleted

    async def _require_post(self, cur, post_id: str, operation: str) -> None:
        await cur.execute("SELECT 1 FROM community_posts WHERE id = %s", (post_id,))
        if await cur.fetchone() is None:
            raise RecordNotFoundError(
                message=f"Community post {post_id} not found",
                record_type="CommunityPost",
                record_id=post_id,
                operation=operation
            )
