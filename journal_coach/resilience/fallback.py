"""Ordered fallbacks for text generation

Each generation call site lists its strategies by priority; the last one
returns static text, so users see a default instead of an error.
"""

import logging
from typing import Any, Awaitable, Callable, List, TypeVar
from dataclasses import dataclass

logger = logging.getLogger(__name__)

T = TypeVar('T')


@dataclass
class FallbackStrategy:
    """
    Attributes:
        name: Label used in logs and the fallback metric
        handler: Async callable producing the value
        priority: 1 is the primary strategy; higher numbers run later
    """
    name: str
    handler: Callable[..., Awaitable[T]]
    priority: int


async def execute_with_fallbacks(
    strategies: List[FallbackStrategy],
    *args: Any,
    **kwargs: Any
) -> T:
    """
    Return the first strategy result that doesn't raise.

    Raises:
        The last strategy's error when every strategy fails

    Example:
        await execute_with_fallbacks([
            FallbackStrategy("text_generation", summarize, priority=1),
            FallbackStrategy("static_default", use_default, priority=2),
        ])
    """
    from journal_coach.resilience.metrics import record_fallback

    ordered = sorted(strategies, key=lambda s: s.priority)
    if not ordered:
        raise RuntimeError("No fallback strategies given")

    primary = ordered[0].name
    last_error: Exception = None

    for strategy in ordered:
        try:
            result = await strategy.handler(*args, **kwargs)
        except Exception as e:
            logger.warning(f"[FALLBACK] '{strategy.name}' failed: {type(e).__name__}: {e}")
            last_error = e
            if strategy.priority > 1:
                record_fallback(primary, strategy.name, success=False)
            continue

        if strategy.priority > 1:
            logger.info(f"[FALLBACK] served '{strategy.name}' in place of '{primary}'")
            record_fallback(primary, strategy.name, success=True)
        return result

    logger.error(f"[FALLBACK] all {len(ordered)} strategies failed, starting with '{primary}'")
    raise last_error
