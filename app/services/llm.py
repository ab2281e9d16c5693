"""
Language-model backend: async OpenAI client singleton, streaming
deltas, and token counting.

The orchestrator only depends on the ``LLMBackend`` protocol: an
instruction, role-tagged messages, and an output bound go in; typed
reasoning / content deltas come out until the stream ends or fails.
"""

from __future__ import annotations

import threading
from typing import Any, AsyncIterator, Literal, Protocol

import openai
import tiktoken
from openai import AsyncOpenAI
from pydantic import BaseModel

from app.core.config import settings
from app.utils.logging import get_logger

logger = get_logger("tufti.services.llm")


class BackendDelta(BaseModel):
    kind: Literal["reasoning", "content"]
    text: str


class BackendError(RuntimeError):
    """Non-success status, transport failure, or broken stream."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class LLMBackend(Protocol):
    def stream(
        self,
        *,
        instruction: str,
        messages: list[dict[str, str]],
        max_tokens: int,
    ) -> AsyncIterator[BackendDelta]:
        ...


# ── Singleton OpenAI client ─────────────────────────────────────────
_client_lock = threading.Lock()
_client_instance: AsyncOpenAI | None = None


def get_openai_client() -> AsyncOpenAI:
    """
    Return a module-level AsyncOpenAI client singleton.

    Raises RuntimeError when the API key is missing.
    """
    global _client_instance
    if _client_instance is not None:
        return _client_instance

    with _client_lock:
        if _client_instance is not None:
            return _client_instance

        if not settings.openai_api_key:
            raise RuntimeError("OpenAI API key not configured (OPENAI_API_KEY).")

        _client_instance = AsyncOpenAI(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
        )
        logger.info("OpenAI client singleton initialized.")
        return _client_instance


class OpenAIStreamingBackend:
    """Chat-completions streaming with reasoning passthrough when the model surfaces it."""

    def __init__(
        self,
        client: AsyncOpenAI | None = None,
        model: str | None = None,
        temperature: float | None = None,
    ):
        self._client = client
        self.model = model or settings.llm_model
        self.temperature = settings.llm_temperature if temperature is None else temperature

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = get_openai_client()
        return self._client

    async def stream(
        self,
        *,
        instruction: str,
        messages: list[dict[str, str]],
        max_tokens: int,
    ) -> AsyncIterator[BackendDelta]:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "system", "content": instruction}, *messages],
                max_tokens=max_tokens,
                temperature=self.temperature,
                stream=True,
            )
        except openai.APIStatusError as exc:
            raise BackendError(
                f"LLM backend returned status {exc.status_code}", status=exc.status_code,
            ) from exc
        except openai.APIError as exc:
            raise BackendError(f"LLM backend request failed: {exc}") from exc

        try:
            async for chunk in response:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta
                reasoning = _reasoning_text(delta)
                if reasoning:
                    yield BackendDelta(kind="reasoning", text=reasoning)
                if delta.content:
                    yield BackendDelta(kind="content", text=delta.content)
        except openai.APIError as exc:
            raise BackendError(f"LLM stream failed: {exc}") from exc
        finally:
            await response.close()


def _reasoning_text(delta: Any) -> str | None:
    # OpenAI-compatible reasoning models expose one of these on the delta
    for attr in ("reasoning_content", "reasoning"):
        value = getattr(delta, attr, None)
        if isinstance(value, str) and value:
            return value
    return None


# ── Token counting ──────────────────────────────────────────────────
_encoder_lock = threading.Lock()
_encoder: tiktoken.Encoding | None = None


def _get_encoder() -> tiktoken.Encoding:
    global _encoder
    if _encoder is not None:
        return _encoder
    with _encoder_lock:
        if _encoder is None:
            _encoder = tiktoken.get_encoding("cl100k_base")
        return _encoder


def count_tokens(text: str) -> int:
    return len(_get_encoder().encode(text))
