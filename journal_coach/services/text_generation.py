"""
Text generation client

Wraps the OpenAI chat completions API behind one narrow call,
generate(prompt) -> str, which raises GenerationFailedError on any failure.
Call sites that must never fail (journal summary, mentor chat) go through
execute_with_fallbacks with a static default as the last strategy.
"""

import logging
import re
import time
from typing import Dict, List, Optional

import pybreaker
from openai import AsyncOpenAI

from journal_coach.config import OPENAI_API_KEY, TEXT_MODEL, TEXT_TIMEOUT_SECONDS
from journal_coach.exceptions import GenerationFailedError
from journal_coach.resilience import (
    TEXT_GENERATION_BREAKER,
    FallbackStrategy,
    execute_with_fallbacks,
    record_api_call,
    retry_with_backoff,
    with_circuit_breaker,
)
from journal_coach.services.prompts import (
    DAILY_CHALLENGE_PROMPT,
    DAILY_QUESTIONS_PROMPT,
    FALLBACK_CHAT_REPLY,
    FALLBACK_SUMMARY,
    JOURNAL_SUMMARY_PROMPT,
    MAX_CHAT_HISTORY,
    MAX_DAILY_QUESTIONS,
    MENTOR_SYSTEM_PROMPT,
)

logger = logging.getLogger(__name__)

API_NAME = "text_generation"

LIST_MARKER = re.compile(r"^(?:[-*•]|\d+[.)])\s*")


def parse_question_lines(text: str) -> List[str]:
    """
    Split generated text into at most MAX_DAILY_QUESTIONS questions

    Blank lines are dropped, and list markers ("1.", "-", "*") are stripped.
    """
    questions = []
    for line in text.splitlines():
        cleaned = LIST_MARKER.sub("", line.strip()).strip()
        if cleaned:
            questions.append(cleaned)
    return questions[:MAX_DAILY_QUESTIONS]


class TextGenerator:
    """
    Client for the external text-generation service.

    Args:
        client: AsyncOpenAI-compatible client (created lazily if omitted)
        model: Chat model name
        breaker: Circuit breaker guarding the API
        api_key: Overrides OPENAI_API_KEY; generation is disabled when empty
    """

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: str = TEXT_MODEL,
        breaker: pybreaker.CircuitBreaker = TEXT_GENERATION_BREAKER,
        api_key: Optional[str] = None,
    ):
        self._client = client
        self.model = model
        self.breaker = breaker
        self.api_key = OPENAI_API_KEY if api_key is None else api_key

    @property
    def enabled(self) -> bool:
        return self._client is not None or bool(self.api_key)

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                timeout=TEXT_TIMEOUT_SECONDS,
                max_retries=0  # retries are handled by retry_with_backoff
            )
        return self._client

    async def generate(self, prompt: str, system: Optional[str] = None) -> str:
        """
        Generate text for a prompt.

        Raises:
            GenerationFailedError: service disabled, failing, circuit open,
                or returned empty text
        """
        if not self.enabled:
            raise GenerationFailedError("Text generation is not configured (OPENAI_API_KEY is empty)")

        start = time.monotonic()
        try:
            guarded = with_circuit_breaker(self.breaker)(self._complete_with_retry)
            text = await guarded(prompt, system)
        except Exception as e:
            record_api_call(API_NAME, success=False, duration=time.monotonic() - start)
            raise GenerationFailedError(
                f"Text generation failed: {type(e).__name__}: {e}",
                operation="generate",
                cause=e
            ) from e

        record_api_call(API_NAME, success=True, duration=time.monotonic() - start)

        text = (text or "").strip()
        if not text:
            raise GenerationFailedError("Text generation returned empty content", operation="generate")
        return text

    async def _complete_with_retry(self, prompt: str, system: Optional[str]) -> str:
        return await retry_with_backoff(self._complete, prompt, system)

    async def _complete(self, prompt: str, system: Optional[str]) -> str:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        response = await self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=0.7,
            max_tokens=400,
        )
        return response.choices[0].message.content

    # ==========================================
    # Raising call sites (caller owns the fallback)
    # ==========================================

    async def generate_daily_questions(self) -> List[str]:
        """Up to three reflective questions; raises if none could be parsed"""
        text = await self.generate(DAILY_QUESTIONS_PROMPT)
        questions = parse_question_lines(text)
        if not questions:
            raise GenerationFailedError("No questions in generated text", operation="generate_daily_questions")
        return questions

    async def generate_daily_challenge(self) -> str:
        """One-sentence challenge"""
        return await self.generate(DAILY_CHALLENGE_PROMPT)

    # ==========================================
    # Non-raising call sites (static fallback)
    # ==========================================

    async def summarize_journal(self, journal_text: str) -> str:
        """2-3 sentence reflection on an entry, or FALLBACK_SUMMARY"""
        prompt = JOURNAL_SUMMARY_PROMPT.format(journal_text=journal_text)
        return await self._generate_or_default(prompt, FALLBACK_SUMMARY)

    async def chat_reply(
        self,
        message: str,
        history: Optional[List[Dict[str, str]]] = None,
    ) -> str:
        """Mentor reply given prior turns ({'role', 'content'} dicts), or FALLBACK_CHAT_REPLY"""
        turns = (history or [])[-MAX_CHAT_HISTORY:]
        transcript = "\n".join(f"{t.get('role', 'user')}: {t.get('content', '')}" for t in turns)
        prompt = (
            f"Conversation history:\n{transcript}\n\nUser: {message}\n\nAssistant:"
            if transcript else message
        )
        return await self._generate_or_default(prompt, FALLBACK_CHAT_REPLY, system=MENTOR_SYSTEM_PROMPT)

    async def _generate_or_default(self, prompt: str, default: str, system: Optional[str] = None) -> str:
        async def use_default() -> str:
            return default

        return await execute_with_fallbacks([
            FallbackStrategy(API_NAME, lambda: self.generate(prompt, system), priority=1),
            FallbackStrategy("static_default", use_default, priority=2),
        ])
