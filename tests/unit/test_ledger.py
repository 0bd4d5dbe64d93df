"""Unit tests for the progression ledger (journal_coach/gamification/ledger.py)"""
import asyncio
import pytest
from datetime import date, datetime, timedelta, timezone
from unittest.mock import AsyncMock

from journal_coach.exceptions import RecordNotFoundError, StoreUnavailableError
from journal_coach.gamification.ledger import ProgressionLedger, challenge_award_key, journal_award_key
from journal_coach.gamification.streak_system import StreakChange
from journal_coach.models import UserProgress, XPSource


def at(day: int, hour: int = 12) -> datetime:
    return datetime(2026, 10, day, hour, 0, tzinfo=timezone.utc)


@pytest.fixture
def ledger(memory_store):
    return ProgressionLedger(memory_store, max_conflict_retries=10)


# ============================================================================
# Account Tests
# ============================================================================

@pytest.mark.asyncio
async def test_open_account_creates_zeroed_progress(ledger, test_user_id):
    """Test account creation gives xp 0, level 1, streak 0"""
    progress = await ledger.open_account(test_user_id, "Sam")

    assert progress.xp == 0
    assert progress.level == 1
    assert progress.streak == 0
    assert progress.last_activity_date is None
    assert progress.display_name == "Sam"


@pytest.mark.asyncio
async def test_open_account_is_idempotent(ledger, test_user_id):
    """Test opening an existing account returns it unchanged"""
    await ledger.open_account(test_user_id)
    await ledger.record_journal_submission(test_user_id, at(1))

    progress = await ledger.open_account(test_user_id)

    assert progress.xp == 10


@pytest.mark.asyncio
async def test_get_progress_unknown_user(ledger):
    """Test missing progress record raises RecordNotFoundError"""
    with pytest.raises(RecordNotFoundError):
        await ledger.get_progress("nobody")


# ============================================================================
# Journal Submission Tests
# ============================================================================

@pytest.mark.asyncio
async def test_first_submission(ledger, test_user_id):
    """Test first submission awards 10 XP and starts the streak"""
    await ledger.open_account(test_user_id)

    result = await ledger.record_journal_submission(test_user_id, at(1))

    assert result.xp_awarded == 10
    assert result.progress.xp == 10
    assert result.progress.streak == 1
    assert result.progress.total_entries == 1
    assert result.progress.last_activity_date == date(2026, 10, 1)
    assert result.streak_transition.change == StreakChange.STARTED


@pytest.mark.asyncio
async def test_submissions_on_days_one_two_five(ledger, test_user_id):
    """Test streak sequence 1, 2, 1 for days 1, 2, 5"""
    await ledger.open_account(test_user_id)

    streaks = []
    for day in (1, 2, 5):
        result = await ledger.record_journal_submission(test_user_id, at(day))
        streaks.append(result.progress.streak)

    assert streaks == [1, 2, 1]


@pytest.mark.asyncio
async def test_same_day_submission_keeps_streak(ledger, test_user_id):
    """Test a second same-day entry earns XP but doesn't extend the streak"""
    await ledger.open_account(test_user_id)
    await ledger.record_journal_submission(test_user_id, at(1, 9))

    result = await ledger.record_journal_submission(test_user_id, at(1, 21))

    assert result.progress.streak == 1
    assert result.progress.xp == 20
    assert result.progress.total_entries == 2


@pytest.mark.asyncio
async def test_level_invariant_after_every_submission(ledger, test_user_id):
    """Test XP never decreases and level always matches xp"""
    await ledger.open_account(test_user_id)

    previous_xp = 0
    for offset in range(12):
        result = await ledger.record_journal_submission(test_user_id, at(1) + timedelta(days=offset))
        assert result.progress.xp >= previous_xp
        assert result.progress.level == result.progress.xp // 100 + 1
        previous_xp = result.progress.xp

    assert previous_xp == 120
    assert result.leveled_up is False
    assert result.progress.level == 2


@pytest.mark.asyncio
async def test_submission_unknown_user(ledger):
    """Test submission for a user without progress raises RecordNotFoundError"""
    with pytest.raises(RecordNotFoundError):
        await ledger.record_journal_submission("nobody", at(1))


@pytest.mark.asyncio
async def test_concurrent_same_day_submissions_all_counted(ledger, test_user_id):
    """Test concurrent submissions each add XP and an entry"""
    await ledger.open_account(test_user_id)

    await asyncio.gather(*[
        ledger.record_journal_submission(test_user_id, at(1)) for _ in range(5)
    ])

    progress = await ledger.get_progress(test_user_id)
    assert progress.xp == 50
    assert progress.total_entries == 5
    assert progress.streak == 1


@pytest.mark.asyncio
async def test_submission_credited_once_per_entry(ledger, memory_store, test_user_id):
    """Test recording the same entry twice awards XP and counts the entry once"""
    await ledger.open_account(test_user_id)

    first = await ledger.record_journal_submission(test_user_id, at(1), entry_id="entry-1")
    repeat = await ledger.record_journal_submission(test_user_id, at(1), entry_id="entry-1")

    assert first.xp_awarded == 10
    assert repeat.xp_awarded == 0
    assert repeat.awarded is False
    assert repeat.progress.xp == 10
    assert repeat.progress.total_entries == 1
    assert repeat.progress.streak == 1

    awards = await memory_store.list_xp_awards(test_user_id, at(1, 0), at(2))
    assert [a.award_key for a in awards] == [journal_award_key("entry-1")]


@pytest.mark.asyncio
async def test_submission_retries_on_conflict(test_user_id):
    """Test the conditional update is retried after a conflict"""
    current = UserProgress(user_id=test_user_id, xp=30, streak=2, last_activity_date=date(2026, 10, 1))
    updated = UserProgress(user_id=test_user_id, xp=40, streak=3, last_activity_date=date(2026, 10, 2))

    store = AsyncMock()
    store.get_progress = AsyncMock(return_value=current)
    store.apply_submission = AsyncMock(side_effect=[None, (updated, True)])

    result = await ProgressionLedger(store, max_conflict_retries=3).record_journal_submission(
        test_user_id, at(2)
    )

    assert result.progress == updated
    assert store.apply_submission.await_count == 2
    assert store.get_progress.await_count == 2

    # Conditional update keyed by the date that was read
    args = store.apply_submission.await_args.args
    assert args[1] == date(2026, 10, 1)
    assert args[2] == 3
    assert args[4].source_type == XPSource.JOURNAL
    assert args[4].amount == 10


@pytest.mark.asyncio
async def test_submission_conflicts_exhaust_retries(test_user_id):
    """Test persistent conflicts surface as StoreUnavailableError"""
    store = AsyncMock()
    store.get_progress = AsyncMock(return_value=UserProgress(user_id=test_user_id))
    store.apply_submission = AsyncMock(return_value=None)

    with pytest.raises(StoreUnavailableError):
        await ProgressionLedger(store, max_conflict_retries=3).record_journal_submission(test_user_id, at(1))

    assert store.apply_submission.await_count == 3


# ============================================================================
# Challenge Completion Tests
# ============================================================================

@pytest.mark.asyncio
async def test_challenge_completion_levels_up(ledger, memory_store, test_user_id):
    """Test xp=95 plus a challenge gives xp=115 and level 2"""
    await ledger.open_account(test_user_id)
    memory_store._progress[test_user_id] = UserProgress(user_id=test_user_id, xp=95)

    result = await ledger.record_challenge_completion(test_user_id, date(2026, 10, 19))

    assert result.xp_awarded == 20
    assert result.progress.xp == 115
    assert result.progress.level == 2
    assert result.old_level == 1
    assert result.leveled_up is True


@pytest.mark.asyncio
async def test_challenge_completion_once_per_day(ledger, test_user_id):
    """Test a second completion the same day awards nothing"""
    await ledger.open_account(test_user_id)

    first = await ledger.record_challenge_completion(test_user_id, date(2026, 10, 19))
    second = await ledger.record_challenge_completion(test_user_id, date(2026, 10, 19))

    assert first.xp_awarded == 20
    assert second.xp_awarded == 0
    assert second.awarded is False
    assert second.progress.xp == 20


@pytest.mark.asyncio
async def test_challenge_completion_next_day_awards_again(ledger, test_user_id):
    """Test the once-per-day limit is per day key"""
    await ledger.open_account(test_user_id)

    await ledger.record_challenge_completion(test_user_id, date(2026, 10, 19))
    result = await ledger.record_challenge_completion(test_user_id, date(2026, 10, 20))

    assert result.progress.xp == 40


@pytest.mark.asyncio
async def test_concurrent_challenge_completions_award_once(ledger, test_user_id):
    """Test concurrent completions for one day award XP exactly once"""
    await ledger.open_account(test_user_id)

    results = await asyncio.gather(*[
        ledger.record_challenge_completion(test_user_id, date(2026, 10, 19)) for _ in range(4)
    ])

    assert sum(r.xp_awarded for r in results) == 20
    assert (await ledger.get_progress(test_user_id)).xp == 20


@pytest.mark.asyncio
async def test_challenge_does_not_touch_streak(ledger, test_user_id):
    """Test challenge XP leaves streak and entry count alone"""
    await ledger.open_account(test_user_id)
    await ledger.record_journal_submission(test_user_id, at(19))

    result = await ledger.record_challenge_completion(test_user_id, date(2026, 10, 19))

    assert result.progress.streak == 1
    assert result.progress.total_entries == 1


def test_challenge_award_key():
    assert challenge_award_key(date(2026, 10, 19)) == "challenge:2026-10-19"
