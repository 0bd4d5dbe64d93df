"""
Report Aggregator

Summarises a user's journaling over a trailing window into an immutable
ReportSnapshot. Every request creates a new snapshot.

The XP chart series is derived from the ledger's XP award history. There is
no mood series: the data model carries no mood signal to derive one from.
"""

import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import List, Optional
from uuid import uuid4

from journal_coach.db.store import ProgressStore
from journal_coach.exceptions import RecordNotFoundError, ValidationError
from journal_coach.models import ReportSnapshot, XPAward, XPSeriesPoint
from journal_coach.resilience import record_engagement_event
from journal_coach.services.prompts import FALLBACK_NARRATIVE, build_report_prompt
from journal_coach.services.text_generation import TextGenerator
from journal_coach.utils.datetime_helpers import day_key, days_in_window, now_utc, to_utc

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS = 7
MAX_WINDOW_DAYS = 365


def build_xp_series(awards: List[XPAward], window_start: datetime, window_end: datetime) -> List[XPSeriesPoint]:
    """XP earned per day key across the window, zero-filled, oldest first"""
    per_day = defaultdict(int)
    for award in awards:
        per_day[day_key(award.awarded_at)] += award.amount

    return [
        XPSeriesPoint(day=day, xp=per_day.get(day, 0))
        for day in days_in_window(window_start, window_end)
    ]


class ReportAggregator:
    """Builds and stores report snapshots"""

    def __init__(self, store: ProgressStore, text_generator: TextGenerator):
        self.store = store
        self.text_generator = text_generator

    async def generate(
        self,
        user_id: str,
        window_days: int = DEFAULT_WINDOW_DAYS,
        now: Optional[datetime] = None,
    ) -> ReportSnapshot:
        """
        Aggregate [now - window_days, now] into a new snapshot

        Raises:
            ValidationError: window_days outside 1..MAX_WINDOW_DAYS
            RecordNotFoundError: no progress record for the user
            StoreUnavailableError: store failure (text-service failures never raise)
        """
        if not 1 <= window_days <= MAX_WINDOW_DAYS:
            raise ValidationError(
                message=f"must be between 1 and {MAX_WINDOW_DAYS}",
                field="window_days",
                value=window_days,
                user_id=user_id
            )

        window_end = to_utc(now) if now else now_utc()
        window_start = window_end - timedelta(days=window_days)

        progress = await self.store.get_progress(user_id)
        if progress is None:
            raise RecordNotFoundError(
                message=f"No progress record for user {user_id}",
                record_type="UserProgress",
                record_id=user_id,
                user_id=user_id,
                operation="generate_report"
            )

        entries = await self.store.list_journal_entries(user_id, window_start, window_end)
        awards = await self.store.list_xp_awards(user_id, window_start, window_end)

        prompt = build_report_prompt(
            entry_count=len(entries),
            window_days=window_days,
            xp=progress.xp,
            streak=progress.streak,
            summaries=[entry.summary or entry.text for entry in entries]
        )
        try:
            narrative = await self.text_generator.generate(prompt)
            outcome = "applied"
        except Exception as e:
            logger.warning(f"Report narrative for user {user_id} fell back to default: {e}")
            narrative = FALLBACK_NARRATIVE
            outcome = "fallback"

        snapshot = ReportSnapshot(
            id=str(uuid4()),
            user_id=user_id,
            window_start=window_start,
            window_end=window_end,
            entry_count=len(entries),
            xp_delta=sum(award.amount for award in awards),
            streak_at_generation=progress.streak,
            narrative=narrative,
            xp_series=build_xp_series(awards, window_start, window_end),
            created_at=now_utc()
        )
        await self.store.insert_report(snapshot)

        logger.info(
            f"Generated report {snapshot.id} for user {user_id}: "
            f"{snapshot.entry_count} entries, +{snapshot.xp_delta} XP over {window_days} days"
        )
        record_engagement_event("report_generated", outcome)
        return snapshot

    async def list_reports(self, user_id: str) -> List[ReportSnapshot]:
        """All snapshots, newest first"""
        return await self.store.list_reports(user_id)

    async def latest_report(self, user_id: str) -> Optional[ReportSnapshot]:
        reports = await self.store.list_reports(user_id)
        return reports[0] if reports else None

    async def get_report(self, user_id: str, report_id: str) -> ReportSnapshot:
        report = await self.store.get_report(user_id, report_id)
        if report is None:
            raise RecordNotFoundError(
                message=f"Report {report_id} not found for user {user_id}",
                record_type="Report",
                record_id=report_id,
                user_id=user_id,
                operation="get_report"
            )
        return report
