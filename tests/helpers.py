"""Shared builders for test doubles"""
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock


def make_completion(text: str) -> SimpleNamespace:
    """Shape of an OpenAI chat completion response"""
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


def make_openai_client(text: str = "Generated text", error: Exception = None) -> MagicMock:
    """Mock AsyncOpenAI client returning `text`, or raising `error`"""
    client = MagicMock()
    if error is not None:
        client.chat.completions.create = AsyncMock(side_effect=error)
    else:
        client.chat.completions.create = AsyncMock(return_value=make_completion(text))
    return client
