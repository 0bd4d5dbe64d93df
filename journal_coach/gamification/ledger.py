"""
Progression Ledger

The only writer of a user's cumulative stats (XP, streak, entry count).

XP and entry counts are applied as increments inside the store. The streak
depends on the stored last_activity_date, so each submission is written as a
conditional update keyed by the date that was read; if another submission for
the same user got there first, the ledger re-reads and tries again.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional
from uuid import uuid4

from journal_coach.config import PROGRESS_CONFLICT_RETRIES
from journal_coach.db.store import ProgressStore
from journal_coach.exceptions import RecordNotFoundError, StoreUnavailableError
from journal_coach.gamification.streak_system import (
    StreakTransition,
    compute_streak_transition,
    format_streak_message,
)
from journal_coach.gamification.xp_system import (
    CHALLENGE_COMPLETION_XP,
    JOURNAL_SUBMISSION_XP,
    get_level,
)
from journal_coach.models import UserProgress, XPAward, XPSource
from journal_coach.resilience import record_engagement_event, record_store_conflict
from journal_coach.utils.datetime_helpers import day_key, now_utc, to_utc

logger = logging.getLogger(__name__)


@dataclass
class LedgerResult:
    """Outcome of a ledger mutation"""
    progress: UserProgress
    xp_awarded: int
    old_level: int
    streak_transition: Optional[StreakTransition] = None
    message: str = ""

    @property
    def awarded(self) -> bool:
        return self.xp_awarded > 0

    @property
    def leveled_up(self) -> bool:
        return self.progress.level > self.old_level


def challenge_award_key(on_date: date) -> str:
    """Award key that limits challenge XP to once per day"""
    return f"challenge:{on_date.isoformat()}"


def journal_award_key(entry_id: str) -> str:
    """Award key that credits a journal entry once, however often it is resubmitted"""
    return f"journal:{entry_id}"


class ProgressionLedger:
    """
    XP and streak bookkeeping.

    Args:
        store: Progress store adapter
        max_conflict_retries: Attempts for the conditional streak update
    """

    def __init__(self, store: ProgressStore, max_conflict_retries: int = PROGRESS_CONFLICT_RETRIES):
        self.store = store
        self.max_conflict_retries = max_conflict_retries

    async def open_account(self, user_id: str, display_name: Optional[str] = None) -> UserProgress:
        """Create the zeroed progress record at account creation (idempotent)"""
        return await self.store.create_progress(user_id, display_name)

    async def get_progress(self, user_id: str) -> UserProgress:
        """
        Raises:
            RecordNotFoundError: no progress record for the user
        """
        progress = await self.store.get_progress(user_id)
        if progress is None:
            raise RecordNotFoundError(
                message=f"No progress record for user {user_id}",
                record_type="UserProgress",
                record_id=user_id,
                user_id=user_id,
                operation="get_progress"
            )
        return progress

    async def record_journal_submission(
        self,
        user_id: str,
        submitted_at: Optional[datetime] = None,
        entry_id: Optional[str] = None,
    ) -> LedgerResult:
        """
        +10 XP, +1 entry, and the streak-continuity rule for the submission day

        With an entry_id the credit is made at most once per entry; a repeat
        returns the current progress with xp_awarded == 0.

        Raises:
            RecordNotFoundError: no progress record for the user
            StoreUnavailableError: store failure, or the conditional update kept
                conflicting after max_conflict_retries attempts
        """
        submitted_at = to_utc(submitted_at) if submitted_at else now_utc()
        activity_day = day_key(submitted_at)
        award_key = journal_award_key(entry_id or str(uuid4()))

        for attempt in range(1, self.max_conflict_retries + 1):
            current = await self.get_progress(user_id)
            transition = compute_streak_transition(
                current.streak,
                current.last_activity_date,
                activity_day
            )
            award = XPAward(
                user_id=user_id,
                amount=JOURNAL_SUBMISSION_XP,
                source_type=XPSource.JOURNAL,
                award_key=award_key,
                awarded_at=submitted_at
            )

            applied = await self.store.apply_submission(
                user_id,
                current.last_activity_date,
                transition.streak,
                transition.last_activity_date,
                award
            )
            if applied is not None:
                updated, awarded = applied
                if not awarded:
                    logger.info(f"Journal entry {entry_id} for user {user_id} already credited")
                    record_engagement_event("journal_submitted", "noop")
                    return LedgerResult(progress=updated, xp_awarded=0, old_level=updated.level)

                logger.info(
                    f"Journal submission for user {user_id}: +{award.amount} XP "
                    f"(total {updated.xp}, level {updated.level}), "
                    f"streak {current.streak} → {updated.streak} ({transition.change.value})"
                )
                record_engagement_event("journal_submitted", "applied")
                return LedgerResult(
                    progress=updated,
                    xp_awarded=award.amount,
                    old_level=current.level,
                    streak_transition=transition,
                    message=format_streak_message(transition, current.streak)
                )

            record_store_conflict("apply_submission")
            logger.debug(
                f"Progress for user {user_id} changed concurrently "
                f"(attempt {attempt}/{self.max_conflict_retries}), retrying"
            )

        raise StoreUnavailableError(
            message=f"Progress update for user {user_id} kept conflicting",
            user_id=user_id,
            operation="record_journal_submission",
            context={"attempts": self.max_conflict_retries}
        )

    async def record_challenge_completion(self, user_id: str, on_date: Optional[date] = None) -> LedgerResult:
        """
        +20 XP for the day's challenge, at most once per day.

        A repeat call for a day that was already awarded changes nothing and
        returns a result with xp_awarded == 0. The caller marks the challenge
        artifact completed first (see JournalService.complete_challenge).

        Raises:
            RecordNotFoundError: no progress record for the user
            StoreUnavailableError: store failure
        """
        on_date = on_date or day_key(now_utc())
        award = XPAward(
            user_id=user_id,
            amount=CHALLENGE_COMPLETION_XP,
            source_type=XPSource.CHALLENGE,
            award_key=challenge_award_key(on_date),
            awarded_at=now_utc()
        )

        progress, awarded = await self.store.award_xp_once(user_id, award)

        if not awarded:
            logger.info(f"Challenge XP for user {user_id} on {on_date} already awarded")
            record_engagement_event("challenge_completed", "noop")
            return LedgerResult(progress=progress, xp_awarded=0, old_level=progress.level)

        old_level = get_level(progress.xp - award.amount)
        logger.info(
            f"Challenge completed by user {user_id} on {on_date}: +{award.amount} XP "
            f"(total {progress.xp}, level {progress.level})"
        )
        if progress.level > old_level:
            logger.info(f"User {user_id} leveled up from {old_level} to {progress.level}!")
        record_engagement_event("challenge_completed", "applied")
        return LedgerResult(progress=progress, xp_awarded=award.amount, old_level=old_level)
