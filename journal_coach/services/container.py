"""
Service Container - Dependency Injection Container

Simple DI container for managing service instances and their dependencies.
Uses lazy loading to only instantiate services when first accessed.
"""

from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional
import logging

from journal_coach.config import ADMIN_USER_IDS, STORE_BACKEND

logger = logging.getLogger(__name__)


def make_admin_predicate(admin_user_ids: Iterable[str]) -> Callable[[str], bool]:
    """Build the is-admin check from an allow-list of user ids"""
    allowed = frozenset(admin_user_ids)
    return lambda user_id: user_id in allowed


def create_store(backend: str = STORE_BACKEND):
    """Store adapter for the configured backend"""
    if backend == "memory":
        from journal_coach.db.memory_store import MemoryStore
        return MemoryStore()
    if backend == "postgres":
        from journal_coach.db.postgres_store import PostgresStore
        return PostgresStore()
    raise ValueError(f"Unknown store backend: {backend}")


@dataclass
class ServiceContainer:
    """
    Simple dependency injection container for services.

    Services are lazy-loaded on first access via properties.
    Infrastructure dependencies (store, text generator, admin check) are injected.
    """

    # Infrastructure dependencies (injected)
    store: object  # ProgressStore implementation
    text_generator: object  # TextGenerator instance
    is_admin: Callable[[str], bool] = field(default_factory=lambda: make_admin_predicate(ADMIN_USER_IDS))

    # Services (lazy-loaded via properties)
    _ledger: Optional[object] = field(default=None, init=False, repr=False)
    _artifact_cache: Optional[object] = field(default=None, init=False, repr=False)
    _report_aggregator: Optional[object] = field(default=None, init=False, repr=False)
    _community_tracker: Optional[object] = field(default=None, init=False, repr=False)
    _journal_service: Optional[object] = field(default=None, init=False, repr=False)
    _coach_service: Optional[object] = field(default=None, init=False, repr=False)

    @property
    def ledger(self):
        """Get ProgressionLedger instance (lazy-loaded)"""
        if self._ledger is None:
            from journal_coach.gamification.ledger import ProgressionLedger
            self._ledger = ProgressionLedger(self.store)
            logger.debug("ProgressionLedger instantiated")
        return self._ledger

    @property
    def artifact_cache(self):
        """Get DailyArtifactCache instance (lazy-loaded)"""
        if self._artifact_cache is None:
            from journal_coach.gamification.daily_artifacts import DailyArtifactCache
            self._artifact_cache = DailyArtifactCache(self.store)
            logger.debug("DailyArtifactCache instantiated")
        return self._artifact_cache

    @property
    def report_aggregator(self):
        """Get ReportAggregator instance (lazy-loaded)"""
        if self._report_aggregator is None:
            from journal_coach.gamification.reports import ReportAggregator
            self._report_aggregator = ReportAggregator(self.store, self.text_generator)
            logger.debug("ReportAggregator instantiated")
        return self._report_aggregator

    @property
    def community_tracker(self):
        """Get CommunityEngagementTracker instance (lazy-loaded)"""
        if self._community_tracker is None:
            from journal_coach.gamification.community import CommunityEngagementTracker
            self._community_tracker = CommunityEngagementTracker(self.store)
            logger.debug("CommunityEngagementTracker instantiated")
        return self._community_tracker

    @property
    def journal_service(self):
        """Get JournalService instance (lazy-loaded)"""
        if self._journal_service is None:
            from journal_coach.services.journal_service import JournalService
            self._journal_service = JournalService(
                self.ledger,
                self.artifact_cache,
                self.community_tracker,
                self.text_generator
            )
            logger.debug("JournalService instantiated")
        return self._journal_service

    @property
    def coach_service(self):
        """Get CoachService instance (lazy-loaded)"""
        if self._coach_service is None:
            from journal_coach.services.coach_service import CoachService
            self._coach_service = CoachService(self.store, self.text_generator)
            logger.debug("CoachService instantiated")
        return self._coach_service


# Global container instance (initialized in main.py or the API lifespan)
_container: Optional[ServiceContainer] = None


def get_container() -> ServiceContainer:
    """
    Get the global service container.

    Raises:
        RuntimeError: If container not initialized (call init_container first)
    """
    if _container is None:
        raise RuntimeError(
            "Service container not initialized. "
            "Call init_container() before using services."
        )
    return _container


def init_container(
    store: Optional[object] = None,
    text_generator: Optional[object] = None,
    is_admin: Optional[Callable[[str], bool]] = None,
) -> ServiceContainer:
    """
    Initialize the global service container.

    Args:
        store: ProgressStore implementation (defaults to STORE_BACKEND)
        text_generator: TextGenerator (defaults to the OpenAI-backed one)
        is_admin: Admin predicate (defaults to ADMIN_USER_IDS)

    Returns:
        ServiceContainer: The initialized container
    """
    global _container

    if store is None:
        store = create_store()
    if text_generator is None:
        from journal_coach.services.text_generation import TextGenerator
        text_generator = TextGenerator()

    _container = ServiceContainer(
        store=store,
        text_generator=text_generator,
        is_admin=is_admin or make_admin_predicate(ADMIN_USER_IDS)
    )

    logger.info(f"Service container initialized (store: {type(store).__name__})")
    return _container


def reset_container() -> None:
    """Drop the global container (tests, shutdown)"""
    global _container
    _container = None


def has_container() -> bool:
    return _container is not None
