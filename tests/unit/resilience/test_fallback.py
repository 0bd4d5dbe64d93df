"""Unit tests for fallback strategies"""
import pytest
from unittest.mock import patch

from journal_coach.resilience.fallback import FallbackStrategy, execute_with_fallbacks


@pytest.mark.asyncio
async def test_primary_strategy_used_when_it_succeeds():
    async def primary(prompt):
        return f"generated: {prompt}"

    async def default(prompt):
        return "static"

    result = await execute_with_fallbacks(
        [FallbackStrategy("static_default", default, priority=2), FallbackStrategy("text_generation", primary, priority=1)],
        "hello"
    )

    assert result == "generated: hello"


@pytest.mark.asyncio
async def test_falls_back_in_priority_order():
    """Test a failing primary is followed by the static default, and recorded"""
    async def primary():
        raise RuntimeError("down")

    async def default():
        return "static"

    with patch("journal_coach.resilience.metrics.record_fallback") as record:
        result = await execute_with_fallbacks([
            FallbackStrategy("text_generation", primary, priority=1),
            FallbackStrategy("static_default", default, priority=2),
        ])

    assert result == "static"
    record.assert_called_once_with("text_generation", "static_default", success=True)


@pytest.mark.asyncio
async def test_raises_last_error_when_all_fail():
    async def primary():
        raise RuntimeError("first")

    async def secondary():
        raise ValueError("second")

    with pytest.raises(ValueError, match="second"):
        await execute_with_fallbacks([
            FallbackStrategy("text_generation", primary, priority=1),
            FallbackStrategy("static_default", secondary, priority=2),
        ])


@pytest.mark.asyncio
async def test_no_strategies():
    with pytest.raises(RuntimeError):
        await execute_with_fallbacks([])
