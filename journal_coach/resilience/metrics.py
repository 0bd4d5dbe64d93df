"""Prometheus counters for the engagement engine

Text-generation health (breaker state, calls, failures, retries, fallbacks)
plus store races and engagement outcomes. Scraped from GET /metrics.
"""

import logging
from prometheus_client import Counter, Histogram, Enum

logger = logging.getLogger(__name__)

GENERATION_BREAKER_STATE = Enum(
    'journal_coach_breaker_state',
    'State of the text-generation circuit breaker',
    ['breaker'],
    states=['closed', 'open', 'half_open']
)

GENERATION_CALLS = Counter(
    'journal_coach_generation_calls_total',
    'Text-generation calls by result',
    ['api', 'status']
)

GENERATION_LATENCY = Histogram(
    'journal_coach_generation_seconds',
    'Latency of text-generation calls',
    ['api'],
    buckets=(0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0, float('inf'))
)

# error_type is the exception class name (APITimeoutError, RateLimitError, ...)
GENERATION_FAILURES = Counter(
    'journal_coach_generation_failures_total',
    'Failed text-generation calls',
    ['api', 'error_type']
)

GENERATION_RETRIES = Counter(
    'journal_coach_generation_retries_total',
    'Retried text-generation calls',
    ['api']
)

FALLBACKS = Counter(
    'journal_coach_fallbacks_total',
    'Fallback strategies served in place of the primary',
    ['primary_api', 'fallback_strategy', 'status']
)

STORE_CONFLICTS = Counter(
    'journal_coach_store_conflicts_total',
    'Conditional updates that lost a race and were re-read',
    ['operation']
)

# event: journal_submitted, challenge_completed, post_liked, post_unliked, report_generated
# outcome: applied, noop, fallback
ENGAGEMENT_EVENTS = Counter(
    'journal_coach_engagement_events_total',
    'Engagement operations by outcome',
    ['event', 'outcome']
)


def _safely(what: str, update) -> None:
    # A broken metric must never fail the request that triggered it
    try:
        update()
    except Exception as e:
        logger.error(f"[METRICS] could not record {what}: {e}")


def record_circuit_breaker_state(api: str, state: str) -> None:
    """state is one of closed, open, half_open"""
    _safely("breaker state", lambda: GENERATION_BREAKER_STATE.labels(breaker=api).state(state))


def record_api_call(api: str, success: bool, duration: float) -> None:
    def update():
        GENERATION_CALLS.labels(api=api, status='success' if success else 'failure').inc()
        GENERATION_LATENCY.labels(api=api).observe(duration)

    _safely("generation call", update)


def record_api_failure(api: str, error_type: str) -> None:
    _safely("generation failure", lambda: GENERATION_FAILURES.labels(api=api, error_type=error_type).inc())


def record_retry(api: str) -> None:
    _safely("retry", lambda: GENERATION_RETRIES.labels(api=api).inc())


def record_fallback(primary_api: str, fallback_strategy: str, success: bool) -> None:
    """
    Args:
        primary_api: Name of the priority-1 strategy that was bypassed
        fallback_strategy: Name of the strategy that ran instead
        success: Whether that strategy produced a value
    """
    _safely("fallback", lambda: FALLBACKS.labels(
        primary_api=primary_api,
        fallback_strategy=fallback_strategy,
        status='success' if success else 'failure',
    ).inc())


def record_store_conflict(operation: str) -> None:
    _safely("store conflict", lambda: STORE_CONFLICTS.labels(operation=operation).inc())


def record_engagement_event(event: str, outcome: str) -> None:
    _safely("engagement event", lambda: ENGAGEMENT_EVENTS.labels(event=event, outcome=outcome).inc())
