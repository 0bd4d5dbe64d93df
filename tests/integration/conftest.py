"""Shared fixtures for API integration tests

The app runs in-process over httpx's ASGI transport with the memory store
and a mocked text-generation client, so no server or database is needed.
"""
import pytest
import pytest_asyncio
import httpx
import pybreaker
from typing import AsyncGenerator, Dict, List
from uuid import uuid4

from journal_coach.api.middleware import limiter
from journal_coach.api.server import create_api_application
from journal_coach.db.memory_store import MemoryStore
from journal_coach.services.container import init_container, make_admin_predicate, reset_container
from journal_coach.services.text_generation import TextGenerator
from tests.integration.api_helpers import ADMIN_USER_ID


@pytest.fixture
def auth_headers(test_api_key: str, monkeypatch) -> Dict[str, str]:
    """Valid authentication headers"""
    monkeypatch.setenv("API_KEYS", test_api_key)
    return {"Authorization": f"Bearer {test_api_key}"}


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def services(store, openai_client):
    """Fresh service container per test"""
    reset_container()
    limiter.reset()
    container = init_container(
        store=store,
        text_generator=TextGenerator(
            client=openai_client,
            breaker=pybreaker.CircuitBreaker(fail_max=5, reset_timeout=60, name="integration_text_generation")
        ),
        is_admin=make_admin_predicate([ADMIN_USER_ID])
    )
    yield container
    reset_container()


@pytest_asyncio.fixture
async def api_client(services, auth_headers) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Async HTTP client bound to the app"""
    app = create_api_application()
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://testserver",
        timeout=30.0,
        follow_redirects=True
    ) as client:
        yield client


@pytest.fixture
def unique_user_id() -> str:
    """Generate unique user ID for test isolation"""
    return f"test_user_{uuid4().hex[:12]}"


@pytest.fixture
def multiple_user_ids() -> List[str]:
    """Generate multiple unique user IDs"""
    return [f"test_user_{uuid4().hex[:12]}" for _ in range(3)]


@pytest_asyncio.fixture
async def test_user(
    api_client: httpx.AsyncClient,
    auth_headers: Dict[str, str],
    unique_user_id: str
) -> str:
    """Open an account and return its user_id"""
    response = await api_client.post(
        "/api/v1/users",
        json={"user_id": unique_user_id, "display_name": "Tester"},
        headers=auth_headers
    )
    assert response.status_code == 201, response.text
    return unique_user_id
