"""Async OpenAI completions client with fixed, deterministic sampling."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import openai

from whatbot.config import settings

if TYPE_CHECKING:
    from openai import AsyncOpenAI

logger = logging.getLogger(__name__)

# Sampling is fixed: replies should be reproducible for the same transcript.
TEMPERATURE = 0
TOP_P = 0.5
FREQUENCY_PENALTY = 0
PRESENCE_PENALTY = 0


class CompletionError(Exception):
    """Raised when the completion service fails or returns an unusable response."""


class CompletionClient:
    """Single reusable client for the completion service.

    In-flight requests are bounded by a semaphore so a burst of inbound
    messages cannot open unlimited simultaneous calls. The SDK's own
    retries are disabled; a failed call fails the message cycle.
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        stop: str | None = None,
        timeout: float | None = None,
        max_concurrent: int | None = None,
    ) -> None:
        self._api_key = api_key if api_key is not None else settings.openai_api_key
        self.model = model or settings.completion_model
        self.max_tokens = max_tokens or settings.completion_max_tokens
        self.stop = stop if stop is not None else settings.completion_stop
        self.timeout = timeout or settings.completion_timeout_seconds
        self._semaphore = asyncio.Semaphore(
            max_concurrent or settings.max_concurrent_completions
        )
        self._client: AsyncOpenAI | None = None

    def _get_client(self) -> AsyncOpenAI:
        """Lazily initialise the AsyncOpenAI client."""
        if self._client is None:
            self._client = openai.AsyncOpenAI(
                api_key=self._api_key,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    def request_params(self, prompt: str) -> dict[str, Any]:
        params: dict[str, Any] = {
            "model": self.model,
            "prompt": prompt,
            "temperature": TEMPERATURE,
            "max_tokens": self.max_tokens,
            "top_p": TOP_P,
            "frequency_penalty": FREQUENCY_PENALTY,
            "presence_penalty": PRESENCE_PENALTY,
        }
        if self.stop:
            params["stop"] = [self.stop]
        return params

    async def complete(self, prompt: str) -> str:
        """Send ``prompt`` and return the first choice's trimmed text.

        Raises CompletionError on network/API failures and on responses
        without a usable first choice.
        """
        client = self._get_client()
        async with self._semaphore:
            try:
                response = await client.completions.create(**self.request_params(prompt))
            except openai.OpenAIError as exc:
                msg = f"Completion request failed: {exc}"
                raise CompletionError(msg) from exc

        choices = getattr(response, "choices", None)
        if not choices:
            msg = "Completion response contained no choices"
            raise CompletionError(msg)
        text = getattr(choices[0], "text", None)
        if not isinstance(text, str):
            msg = "Completion response choice has no text"
            raise CompletionError(msg)

        return text.strip()

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
