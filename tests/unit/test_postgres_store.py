"""Unit tests for the PostgreSQL store (journal_coach/db/postgres_store.py)"""
import asyncio
import pytest
import psycopg
from datetime import date, datetime, timezone
from unittest.mock import AsyncMock

from journal_coach.db.postgres_store import PostgresStore
from journal_coach.exceptions import RecordNotFoundError, StoreUnavailableError
from journal_coach.models import ArtifactKind, CommunityPost, DailyArtifact, JournalEntry, XPAward, XPSource

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)

PROGRESS_ROW = {
    "user_id": "user-123",
    "display_name": "Sam",
    "xp": 95,
    "streak": 3,
    "last_activity_date": date(2026, 10, 18),
    "total_entries": 9,
}


def sql_of(call) -> str:
    return call.args[0]


@pytest.fixture
def store(mock_database):
    return PostgresStore(database=mock_database, timeout=2.0)


def journal_award(key: str = "journal:abc") -> XPAward:
    return XPAward(user_id="user-123", amount=10, source_type=XPSource.JOURNAL, award_key=key, awarded_at=NOW)


# ============================================================================
# Progress Tests
# ============================================================================

@pytest.mark.asyncio
async def test_get_progress(store, mock_cursor):
    mock_cursor.fetchone = AsyncMock(return_value=PROGRESS_ROW)

    progress = await store.get_progress("user-123")

    assert progress.xp == 95
    assert progress.level == 1
    assert "FROM user_progress" in sql_of(mock_cursor.execute.call_args)


@pytest.mark.asyncio
async def test_get_progress_missing(store, mock_cursor):
    assert await store.get_progress("nobody") is None


@pytest.mark.asyncio
async def test_create_progress_new(store, mock_cursor, mock_conn):
    """Test account creation uses ON CONFLICT and commits"""
    mock_cursor.fetchone = AsyncMock(return_value={**PROGRESS_ROW, "xp": 0, "streak": 0, "total_entries": 0})

    progress = await store.create_progress("user-123", "Sam")

    assert progress.xp == 0
    query = sql_of(mock_cursor.execute.call_args)
    assert "INSERT INTO user_progress" in query
    assert "ON CONFLICT (user_id) DO NOTHING" in query
    mock_conn.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_create_progress_existing_returns_current(store, mock_cursor):
    mock_cursor.fetchone = AsyncMock(side_effect=[None, PROGRESS_ROW])

    progress = await store.create_progress("user-123")

    assert progress.xp == 95
    assert mock_cursor.execute.await_count == 2


@pytest.mark.asyncio
async def test_apply_submission_conflict_returns_none(store, mock_cursor):
    """Test a stale last_activity_date matches no row and nothing is written"""
    mock_cursor.fetchone = AsyncMock(return_value=None)

    result = await store.apply_submission("user-123", date(2026, 10, 17), 4, date(2026, 10, 19), journal_award())

    assert result is None
    assert mock_cursor.execute.await_count == 1
    query = sql_of(mock_cursor.execute.call_args)
    assert "last_activity_date IS NOT DISTINCT FROM %s" in query
    assert "FOR UPDATE" in query
    assert mock_cursor.execute.call_args.args[1][-1] == date(2026, 10, 17)


@pytest.mark.asyncio
async def test_apply_submission_records_award(store, mock_cursor):
    mock_cursor.fetchone = AsyncMock(side_effect=[PROGRESS_ROW, {"id": 7}, {**PROGRESS_ROW, "xp": 105, "streak": 4}])

    progress, awarded = await store.apply_submission(
        "user-123", date(2026, 10, 18), 4, date(2026, 10, 19), journal_award()
    )

    assert awarded is True
    assert progress.xp == 105
    assert progress.level == 2
    queries = [sql_of(call) for call in mock_cursor.execute.call_args_list]
    assert "ON CONFLICT (user_id, award_key) DO NOTHING" in queries[1]
    assert "total_entries = total_entries + 1" in queries[2]


@pytest.mark.asyncio
async def test_apply_submission_duplicate_award_key(store, mock_cursor):
    """Test an entry that was already credited leaves progress untouched"""
    mock_cursor.fetchone = AsyncMock(side_effect=[PROGRESS_ROW, None])

    progress, awarded = await store.apply_submission(
        "user-123", date(2026, 10, 18), 4, date(2026, 10, 19), journal_award("journal:entry-1")
    )

    assert awarded is False
    assert progress.xp == 95
    assert progress.total_entries == 9
    assert mock_cursor.execute.await_count == 2
    assert "UPDATE user_progress" not in sql_of(mock_cursor.execute.call_args)


@pytest.mark.asyncio
async def test_award_xp_once_first_time(store, mock_cursor):
    mock_cursor.fetchone = AsyncMock(side_effect=[PROGRESS_ROW, {"id": 1}, {**PROGRESS_ROW, "xp": 115}])
    award = XPAward(
        user_id="user-123", amount=20, source_type=XPSource.CHALLENGE,
        award_key="challenge:2026-10-19", awarded_at=NOW
    )

    progress, awarded = await store.award_xp_once("user-123", award)

    assert awarded is True
    assert progress.xp == 115
    queries = [sql_of(call) for call in mock_cursor.execute.call_args_list]
    assert "FOR UPDATE" in queries[0]
    assert "ON CONFLICT (user_id, award_key) DO NOTHING" in queries[1]


@pytest.mark.asyncio
async def test_award_xp_once_duplicate_key(store, mock_cursor):
    """Test a used award key leaves XP untouched"""
    mock_cursor.fetchone = AsyncMock(side_effect=[PROGRESS_ROW, None])
    award = XPAward(
        user_id="user-123", amount=20, source_type=XPSource.CHALLENGE,
        award_key="challenge:2026-10-19", awarded_at=NOW
    )

    progress, awarded = await store.award_xp_once("user-123", award)

    assert awarded is False
    assert progress.xp == 95
    assert mock_cursor.execute.await_count == 2


@pytest.mark.asyncio
async def test_award_xp_once_unknown_user(store, mock_cursor):
    mock_cursor.fetchone = AsyncMock(return_value=None)

    with pytest.raises(RecordNotFoundError):
        await store.award_xp_once("nobody", journal_award())


# ============================================================================
# Artifact Tests
# ============================================================================

def artifact_row(content):
    return {
        "user_id": "user-123",
        "day": date(2026, 10, 19),
        "kind": "challenge",
        "content": content,
        "completed": False,
        "is_fallback": False,
        "created_at": NOW,
    }


@pytest.mark.asyncio
async def test_create_artifact_if_absent_lost_race(store, mock_cursor):
    """Test the insert that loses the race returns the winner's content"""
    mock_cursor.fetchone = AsyncMock(side_effect=[None, artifact_row(["Winner"])])
    candidate = DailyArtifact(
        user_id="user-123", day=date(2026, 10, 19), kind=ArtifactKind.CHALLENGE,
        content=["Loser"], created_at=NOW
    )

    persisted = await store.create_artifact_if_absent(candidate)

    assert persisted.content == ["Winner"]
    assert persisted.kind == ArtifactKind.CHALLENGE
    assert "ON CONFLICT (user_id, day, kind) DO NOTHING" in sql_of(mock_cursor.execute.call_args_list[0])


@pytest.mark.asyncio
async def test_complete_challenge_transition(store, mock_cursor):
    mock_cursor.fetchone = AsyncMock(return_value={"user_id": "user-123"})

    assert await store.complete_challenge("user-123", date(2026, 10, 19)) is True
    assert "completed = FALSE" in sql_of(mock_cursor.execute.call_args)


@pytest.mark.asyncio
async def test_complete_challenge_already_completed(store, mock_cursor):
    mock_cursor.fetchone = AsyncMock(side_effect=[None, {"?column?": 1}])

    assert await store.complete_challenge("user-123", date(2026, 10, 19)) is False


@pytest.mark.asyncio
async def test_complete_challenge_missing(store, mock_cursor):
    mock_cursor.fetchone = AsyncMock(side_effect=[None, None])

    with pytest.raises(RecordNotFoundError):
        await store.complete_challenge("user-123", date(2026, 10, 19))


# ============================================================================
# Journal Tests
# ============================================================================

def journal_row(**overrides):
    row = {
        "id": "entry-1",
        "user_id": "user-123",
        "text": "Studied for two hours.",
        "questions": [],
        "answers": ["Studied for two hours."],
        "summary": "summary",
        "created_at": NOW,
        "shared": False,
    }
    row.update(overrides)
    return row


@pytest.mark.asyncio
async def test_append_journal_entry_inserts(store, mock_cursor, mock_conn):
    mock_cursor.fetchone = AsyncMock(return_value=journal_row())

    stored = await store.append_journal_entry(JournalEntry(**journal_row()))

    assert stored.id == "entry-1"
    assert "ON CONFLICT (id) DO NOTHING" in sql_of(mock_cursor.execute.call_args)
    assert mock_cursor.execute.await_count == 1
    mock_conn.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_append_journal_entry_existing_id_returns_stored(store, mock_cursor):
    """Test a resubmitted id keeps the first entry"""
    earlier = NOW.replace(hour=8)
    mock_cursor.fetchone = AsyncMock(side_effect=[None, journal_row(created_at=earlier)])

    stored = await store.append_journal_entry(JournalEntry(**journal_row(text="retry")))

    assert stored.created_at == earlier
    assert stored.text == "Studied for two hours."
    assert "FROM journal_entries WHERE id = %s" in sql_of(mock_cursor.execute.call_args)


@pytest.mark.asyncio
async def test_list_journal_entries_window_is_inclusive(store, mock_cursor):
    start, end = NOW.replace(day=12), NOW
    mock_cursor.fetchall = AsyncMock(return_value=[journal_row(created_at=start), journal_row(id="entry-2")])

    entries = await store.list_journal_entries("user-123", start, end)

    assert [e.id for e in entries] == ["entry-1", "entry-2"]
    query = sql_of(mock_cursor.execute.call_args)
    assert "created_at >= %s" in query
    assert "created_at <= %s" in query
    assert mock_cursor.execute.call_args.args[1] == ("user-123", start, start, end, end)


# ============================================================================
# Community Tests
# ============================================================================

def post_row(liked_by):
    return {
        "id": "post-1",
        "author_id": "author",
        "author_name": "Sam",
        "journal_id": "journal-1",
        "text": "text",
        "summary": "summary",
        "created_at": NOW,
        "like_count": len(liked_by),
        "liked_by": liked_by,
    }


@pytest.mark.asyncio
async def test_insert_post_existing_id_returns_stored(store, mock_cursor):
    """Test republishing keeps the stored post and its likes"""
    mock_cursor.fetchone = AsyncMock(side_effect=[None, post_row(["reader"])])
    post = CommunityPost(
        id="post-1", author_id="author", author_name="Sam", journal_id="journal-1",
        text="text", summary="summary", created_at=NOW
    )

    stored = await store.insert_post(post)

    assert stored.like_count == 1
    assert stored.liked_by == {"reader"}
    queries = [sql_of(call) for call in mock_cursor.execute.call_args_list]
    assert "ON CONFLICT (id) DO NOTHING" in queries[0]


@pytest.mark.asyncio
async def test_like_post_conditional_update(store, mock_cursor):
    mock_cursor.fetchone = AsyncMock(return_value={"id": "post-1"})

    assert await store.like_post("post-1", "reader") is True
    query = sql_of(mock_cursor.execute.call_args)
    assert "NOT (%s = ANY(liked_by))" in query
    assert "like_count = like_count + 1" in query


@pytest.mark.asyncio
async def test_like_post_already_liked(store, mock_cursor):
    mock_cursor.fetchone = AsyncMock(side_effect=[None, {"?column?": 1}])

    assert await store.like_post("post-1", "reader") is False


@pytest.mark.asyncio
async def test_like_post_missing(store, mock_cursor):
    mock_cursor.fetchone = AsyncMock(side_effect=[None, None])

    with pytest.raises(RecordNotFoundError):
        await store.like_post("missing", "reader")


@pytest.mark.asyncio
async def test_unlike_post_never_negative(store, mock_cursor):
    mock_cursor.fetchone = AsyncMock(return_value={"id": "post-1"})

    assert await store.unlike_post("post-1", "reader") is True
    assert "GREATEST(like_count - 1, 0)" in sql_of(mock_cursor.execute.call_args)


@pytest.mark.asyncio
async def test_list_posts_converts_liked_by(store, mock_cursor):
    mock_cursor.fetchall = AsyncMock(return_value=[post_row(["a", "b"])])

    posts = await store.list_posts(10)

    assert posts[0].liked_by == {"a", "b"}
    assert posts[0].like_count == 2
    assert "ORDER BY created_at DESC" in sql_of(mock_cursor.execute.call_args)


# ============================================================================
# Failure Handling Tests
# ============================================================================

@pytest.mark.asyncio
async def test_driver_error_becomes_store_unavailable(store, mock_cursor):
    mock_cursor.execute = AsyncMock(side_effect=psycopg.OperationalError("connection refused"))

    with pytest.raises(StoreUnavailableError):
        await store.get_progress("user-123")


@pytest.mark.asyncio
async def test_timeout_becomes_store_unavailable(mock_database, mock_cursor):
    async def hang(*args, **kwargs):
        await asyncio.sleep(5)

    mock_cursor.execute = AsyncMock(side_effect=hang)
    store = PostgresStore(database=mock_database, timeout=0.05)

    with pytest.raises(StoreUnavailableError):
        await store.get_post("post-1")
