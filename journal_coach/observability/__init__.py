"""Error tracking for Journal Coach"""
from journal_coach.observability.sentry_config import init_sentry, shutdown_sentry

__all__ = ["init_sentry", "shutdown_sentry"]
