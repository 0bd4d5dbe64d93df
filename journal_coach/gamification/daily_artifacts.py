"""
Daily Artifact Cache

One challenge and one question set per user per day, however many times the
client asks. The first request of the day generates the content; the store's
create-if-absent write decides which of several concurrent first requests
wins, and every caller gets the winner back.

If generation fails, the static default for the kind is persisted instead, so
the text service is not called again for that user and day.
"""

import logging
from datetime import date
from typing import Awaitable, Callable, List, Optional, Union

from journal_coach.db.store import ProgressStore
from journal_coach.models import ArtifactKind, CompletionOutcome, DailyArtifact
from journal_coach.resilience import record_engagement_event
from journal_coach.services.prompts import (
    FALLBACK_CHALLENGE,
    FALLBACK_DAILY_QUESTIONS,
    MAX_DAILY_QUESTIONS,
)
from journal_coach.utils.datetime_helpers import now_utc

logger = logging.getLogger(__name__)

Generator = Callable[[], Awaitable[Union[str, List[str]]]]

FALLBACK_CONTENT = {
    ArtifactKind.CHALLENGE: [FALLBACK_CHALLENGE],
    ArtifactKind.QUESTION_SET: FALLBACK_DAILY_QUESTIONS,
}


def normalize_content(kind: ArtifactKind, generated: Union[str, List[str]]) -> List[str]:
    """
    Shape generated content for storage

    Challenge: exactly one non-empty string.
    Question set: non-empty strings, at most MAX_DAILY_QUESTIONS.

    Raises:
        ValueError: nothing usable was generated
    """
    lines = [generated] if isinstance(generated, str) else list(generated)
    lines = [line.strip() for line in lines if line and line.strip()]
    if not lines:
        raise ValueError(f"Generator returned no usable {kind.value} content")

    if kind == ArtifactKind.CHALLENGE:
        return [" ".join(lines)]
    return lines[:MAX_DAILY_QUESTIONS]


class DailyArtifactCache:
    """Single-generation-per-day content cache"""

    def __init__(self, store: ProgressStore):
        self.store = store

    async def get_artifact(self, user_id: str, day: date, kind: ArtifactKind) -> Optional[DailyArtifact]:
        """The stored artifact for the day, or None; never generates"""
        return await self.store.get_artifact(user_id, day, kind)

    async def get_or_create(
        self,
        user_id: str,
        day: date,
        kind: ArtifactKind,
        generator: Generator,
    ) -> DailyArtifact:
        """
        Return the artifact for (user, day, kind), generating it on first request

        Args:
            user_id: Owner
            day: Day key (from datetime_helpers.day_key, never client-local)
            kind: CHALLENGE or QUESTION_SET
            generator: Async callable producing the content; any exception it
                raises selects the static default

        Raises:
            StoreUnavailableError: store failure (generation failures never raise)
        """
        existing = await self.store.get_artifact(user_id, day, kind)
        if existing is not None:
            return existing

        is_fallback = False
        try:
            content = normalize_content(kind, await generator())
        except Exception as e:
            logger.warning(
                f"Generating {kind.value} for user {user_id} on {day} failed, "
                f"persisting static default: {type(e).__name__}: {e}"
            )
            content = list(FALLBACK_CONTENT[kind])
            is_fallback = True

        candidate = DailyArtifact(
            user_id=user_id,
            day=day,
            kind=kind,
            content=content,
            is_fallback=is_fallback,
            created_at=now_utc()
        )
        persisted = await self.store.create_artifact_if_absent(candidate)

        if persisted.content == candidate.content and persisted.created_at == candidate.created_at:
            logger.info(f"Created {kind.value} for user {user_id} on {day} (fallback={is_fallback})")
        else:
            logger.info(f"{kind.value} for user {user_id} on {day} was created concurrently; using existing")
        return persisted

    async def mark_challenge_completed(self, user_id: str, day: date) -> CompletionOutcome:
        """
        Flip the day's challenge to completed

        Returns:
            COMPLETED on the false→true transition, ALREADY_COMPLETED otherwise

        Raises:
            RecordNotFoundError: no challenge exists for that day yet
            StoreUnavailableError: store failure
        """
        transitioned = await self.store.complete_challenge(user_id, day)
        if transitioned:
            logger.info(f"Challenge for user {user_id} on {day} marked completed")
            return CompletionOutcome.COMPLETED

        logger.info(f"Challenge for user {user_id} on {day} was already completed")
        record_engagement_event("challenge_marked", "noop")
        return CompletionOutcome.ALREADY_COMPLETED
