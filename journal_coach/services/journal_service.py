"""
JournalService - journaling flow

Ties a journal submission, the day's prompts and the daily challenge to the
progression ledger, the daily artifact cache and the community tracker.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional
from uuid import uuid4

from journal_coach.exceptions import ValidationError
from journal_coach.gamification.community import CommunityEngagementTracker
from journal_coach.gamification.daily_artifacts import DailyArtifactCache
from journal_coach.gamification.ledger import LedgerResult, ProgressionLedger
from journal_coach.models import (
    ArtifactKind,
    CompletionOutcome,
    DailyArtifact,
    JournalEntry,
    UserProgress,
)
from journal_coach.services.text_generation import TextGenerator
from journal_coach.utils.datetime_helpers import day_key, now_utc, to_utc

logger = logging.getLogger(__name__)

MAX_JOURNAL_LENGTH = 20000


@dataclass
class JournalSubmissionResult:
    entry: JournalEntry
    progress: UserProgress
    xp_awarded: int
    leveled_up: bool
    message: str = ""
    post_id: Optional[str] = None

    @property
    def level(self) -> int:
        return self.progress.level


@dataclass
class ChallengeCompletionResult:
    outcome: CompletionOutcome
    progress: UserProgress
    xp_awarded: int
    leveled_up: bool


def compose_journal_text(answers: List[str]) -> str:
    """Non-blank answers joined into the entry text"""
    return "\n\n".join(answer.strip() for answer in answers if answer and answer.strip())


class JournalService:
    """
    Service for the journaling flow.

    Responsibilities:
    - Journal submission (summary, ledger update, optional sharing)
    - Daily questions and daily challenge
    - Challenge completion
    """

    def __init__(
        self,
        ledger: ProgressionLedger,
        cache: DailyArtifactCache,
        tracker: CommunityEngagementTracker,
        text_generator: TextGenerator,
    ):
        self.ledger = ledger
        self.cache = cache
        self.tracker = tracker
        self.text_generator = text_generator
        logger.debug("JournalService initialized")

    async def submit_journal(
        self,
        user_id: str,
        answers: List[str],
        questions: Optional[List[str]] = None,
        share: bool = False,
        display_name: Optional[str] = None,
        submitted_at: Optional[datetime] = None,
        entry_id: Optional[str] = None,
    ) -> JournalSubmissionResult:
        """
        Store a journal entry and credit it to the user's progress.

        Resubmitting with the same entry_id after a failure is safe: the
        stored entry is reused, its XP is credited once and it is shared at
        most once. The stored entry's created_at wins over submitted_at.

        Raises:
            ValidationError: the answers contain no text, or too much, or
                entry_id belongs to another user
            RecordNotFoundError: no progress record for the user
            StoreUnavailableError: store failure
        """
        text = compose_journal_text(answers)
        if not text:
            raise ValidationError(
                message="Journal entry cannot be empty",
                field="answers",
                user_id=user_id
            )
        if len(text) > MAX_JOURNAL_LENGTH:
            raise ValidationError(
                message=f"Journal entry exceeds {MAX_JOURNAL_LENGTH} characters",
                field="answers",
                value=len(text),
                user_id=user_id
            )

        submitted_at = to_utc(submitted_at) if submitted_at else now_utc()

        # Fail before any write if the account does not exist
        current = await self.ledger.get_progress(user_id)

        summary = await self.text_generator.summarize_journal(text)
        entry = JournalEntry(
            id=entry_id or str(uuid4()),
            user_id=user_id,
            text=text,
            questions=list(questions or []),
            answers=[answer for answer in answers if answer and answer.strip()],
            summary=summary,
            created_at=submitted_at,
            shared=share
        )
        entry = await self.ledger.store.append_journal_entry(entry)
        if entry.user_id != user_id:
            raise ValidationError(
                message=f"Journal entry {entry.id} belongs to another user",
                field="entry_id",
                value=entry.id,
                user_id=user_id
            )

        ledger_result: LedgerResult = await self.ledger.record_journal_submission(
            user_id, entry.created_at, entry_id=entry.id
        )

        post_id = None
        if entry.shared:
            post_id = await self.tracker.publish(entry, display_name or current.display_name)

        logger.info(
            f"Journal {entry.id} submitted by user {user_id} "
            f"(level {ledger_result.progress.level}, shared={entry.shared})"
        )
        return JournalSubmissionResult(
            entry=entry,
            progress=ledger_result.progress,
            xp_awarded=ledger_result.xp_awarded,
            leveled_up=ledger_result.leveled_up,
            message=ledger_result.message,
            post_id=post_id
        )

    async def daily_questions(self, user_id: str, now: Optional[datetime] = None) -> DailyArtifact:
        """Today's question set, generated once per day"""
        day = day_key(now or now_utc())
        return await self.cache.get_or_create(
            user_id, day, ArtifactKind.QUESTION_SET, self.text_generator.generate_daily_questions
        )

    async def daily_challenge(self, user_id: str, now: Optional[datetime] = None) -> DailyArtifact:
        """Today's challenge, generated once per day"""
        day = day_key(now or now_utc())
        return await self.cache.get_or_create(
            user_id, day, ArtifactKind.CHALLENGE, self.text_generator.generate_daily_challenge
        )

    async def complete_challenge(self, user_id: str, now: Optional[datetime] = None) -> ChallengeCompletionResult:
        """
        Complete today's challenge and award its XP once.

        The artifact flips to completed first, then the ledger award is made.
        The award is attempted even when the artifact was already completed;
        its award key makes it a no-op unless an earlier award was lost.

        Raises:
            RecordNotFoundError: no challenge was issued today, or no progress record
            StoreUnavailableError: store failure
        """
        day = day_key(now or now_utc())

        outcome = await self.cache.mark_challenge_completed(user_id, day)
        ledger_result = await self.ledger.record_challenge_completion(user_id, day)

        if outcome == CompletionOutcome.ALREADY_COMPLETED and ledger_result.awarded:
            logger.warning(f"Recovered missing challenge XP for user {user_id} on {day}")

        return ChallengeCompletionResult(
            outcome=outcome,
            progress=ledger_result.progress,
            xp_awarded=ledger_result.xp_awarded,
            leveled_up=ledger_result.leveled_up
        )
