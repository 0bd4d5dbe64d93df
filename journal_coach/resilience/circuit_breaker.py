"""Circuit breaker around the text-generation API

After repeated failures the breaker opens and generation calls fail fast,
so daily artifacts, summaries and narratives go straight to their static
defaults instead of waiting on a dead service.
"""

import pybreaker
import logging
from typing import Callable, Any, TypeVar
from functools import wraps

logger = logging.getLogger(__name__)

T = TypeVar('T')


class CircuitBreakerListener(pybreaker.CircuitBreakerListener):
    """Logs transitions and failures and mirrors them into Prometheus"""

    def state_change(self, cb: pybreaker.CircuitBreaker, old_state: Any, new_state: Any) -> None:
        logger.warning(f"[CIRCUIT_BREAKER] {cb.name}: {old_state.name} -> {new_state.name}")

        from journal_coach.resilience.metrics import record_circuit_breaker_state
        record_circuit_breaker_state(cb.name, new_state.name.lower())

    def failure(self, cb: pybreaker.CircuitBreaker, exc: Exception) -> None:
        logger.error(f"[CIRCUIT_BREAKER] {cb.name} failure: {type(exc).__name__}: {exc}")

        from journal_coach.resilience.metrics import record_api_failure
        record_api_failure(cb.name, type(exc).__name__)


# Opens after 5 consecutive failures, half-opens after 60s
TEXT_GENERATION_BREAKER = pybreaker.CircuitBreaker(
    fail_max=5,
    reset_timeout=60,
    name="text_generation_api",
    listeners=[CircuitBreakerListener()]
)


def with_circuit_breaker(breaker: pybreaker.CircuitBreaker) -> Callable:
    """
    Run an async callable through `breaker`.

    While the breaker is open the callable is not awaited and
    pybreaker.CircuitBreakerError is raised instead.
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            try:
                return await breaker.call_async(func, *args, **kwargs)
            except pybreaker.CircuitBreakerError:
                logger.warning(f"[CIRCUIT_BREAKER] {breaker.name} open, skipping {func.__name__}")
                raise
        return wrapper
    return decorator
