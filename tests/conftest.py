"""Global test fixtures and utilities for journal-coach tests"""
import pytest
import pybreaker
from unittest.mock import AsyncMock, MagicMock
from datetime import datetime, timezone

from journal_coach.db.memory_store import MemoryStore
from journal_coach.services.text_generation import TextGenerator
from tests.helpers import make_openai_client


# ============================================================================
# Store Fixtures
# ============================================================================

@pytest.fixture
def memory_store():
    """Fresh in-memory store"""
    return MemoryStore(timeout=2.0)


@pytest.fixture
def mock_cursor():
    """Mock psycopg cursor with standard query results"""
    cursor = AsyncMock()
    cursor.fetchone = AsyncMock(return_value=None)
    cursor.fetchall = AsyncMock(return_value=[])
    cursor.execute = AsyncMock()
    return cursor


@pytest.fixture
def mock_conn(mock_cursor):
    """Mock psycopg connection whose cursor() and transaction() are async context managers"""
    conn = MagicMock()
    conn.cursor.return_value.__aenter__.return_value = mock_cursor
    conn.commit = AsyncMock()
    return conn


@pytest.fixture
def mock_database(mock_conn):
    """Stand-in for journal_coach.db.connection.Database"""
    database = MagicMock()
    database.connection.return_value.__aenter__.return_value = mock_conn
    return database


# ============================================================================
# Text Generation Fixtures
# ============================================================================

@pytest.fixture
def fresh_breaker():
    """Circuit breaker isolated from the module-level one"""
    return pybreaker.CircuitBreaker(fail_max=5, reset_timeout=60, name="test_text_generation")


@pytest.fixture
def openai_client():
    return make_openai_client("Generated text")


@pytest.fixture
def text_generator(openai_client, fresh_breaker):
    """TextGenerator backed by a mock client that always succeeds"""
    return TextGenerator(client=openai_client, breaker=fresh_breaker)


@pytest.fixture
def failing_text_generator(fresh_breaker):
    """TextGenerator whose client always fails (non-retryable error)"""
    client = make_openai_client(error=RuntimeError("text service down"))
    return TextGenerator(client=client, breaker=fresh_breaker)


# ============================================================================
# User Fixtures
# ============================================================================

@pytest.fixture
def test_user_id():
    """Standard test user ID"""
    return "user-123"


@pytest.fixture
def test_api_key():
    """Standard test API key"""
    return "test_api_key_12345"


@pytest.fixture
def fixed_now():
    """Fixed reference time: 2026-10-19 12:00 UTC"""
    return datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)
