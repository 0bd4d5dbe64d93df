"""Resilience patterns for the text-generation service

This module provides circuit breakers, retry logic, fallback strategies,
and metrics collection so that a failing text service degrades to static
default text instead of failing the user's request.
"""

from journal_coach.resilience.circuit_breaker import (
    TEXT_GENERATION_BREAKER,
    with_circuit_breaker,
)
from journal_coach.resilience.retry import retry_with_backoff, with_retry
from journal_coach.resilience.fallback import execute_with_fallbacks, FallbackStrategy
from journal_coach.resilience.metrics import (
    record_circuit_breaker_state,
    record_api_call,
    record_api_failure,
    record_retry,
    record_fallback,
    record_store_conflict,
    record_engagement_event,
)

__all__ = [
    # Circuit Breakers
    "TEXT_GENERATION_BREAKER",
    "with_circuit_breaker",
    # Retry
    "retry_with_backoff",
    "with_retry",
    # Fallback
    "execute_with_fallbacks",
    "FallbackStrategy",
    # Metrics
    "record_circuit_breaker_state",
    "record_api_call",
    "record_api_failure",
    "record_retry",
    "record_fallback",
    "record_store_conflict",
    "record_engagement_event",
]
