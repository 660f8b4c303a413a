"""
OpenAI backend for GoalForge.

Sends each prompt through the Chat Completions API and returns the
assistant text.  The SDK's own retries are disabled: retry policy
belongs to the run loop (see ``goalforge.llms.retry``), so every SDK
failure is classified here as transient or fatal and surfaced at once.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional

import httpx
import openai
from pydantic import BaseModel

from goalforge.errors import BackendFatalError, BackendTransientError
from goalforge.llms.base_llm import BaseLLM

logger = logging.getLogger(__name__)


# ======================================================================== #
# Lightweight response wrappers - match BaseLLM contract                    #
# ======================================================================== #

class _Choice(BaseModel):
    """Minimal wrapper so we match BaseLLM expectation."""
    message: Dict[str, Any]


class _LLMResponse(BaseModel):
    choices: List[_Choice]


_TRANSIENT_ERRORS: tuple = (
    openai.RateLimitError,
    openai.APIConnectionError,
    openai.InternalServerError,
    httpx.TransportError,
)

_FATAL_ERRORS: tuple = (
    openai.AuthenticationError,
    openai.PermissionDeniedError,
    openai.BadRequestError,
    openai.NotFoundError,
    openai.UnprocessableEntityError,
)


class OpenAILLM(BaseLLM):
    """
    OpenAI chat-completions backend.

    Args:
        model_name: Default model identifier (e.g. ``"gpt-4o-mini"``).
        api_key: OpenAI API key (falls back to ``OPENAI_API_KEY`` env var).
        base_url: Custom base URL (falls back to ``OPENAI_API_BASE``).
        organization: Org ID (falls back to ``OPENAI_ORG_ID``).
        timeout: Request timeout in seconds.
        client: Pre-built ``AsyncOpenAI``-compatible client (skips key lookup).
    """

    def __init__(
        self,
        model_name: str = "gpt-4o-mini",
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        organization: Optional[str] = None,
        timeout: float = 60.0,
        client: Any = None,
    ) -> None:
        self.model_name = model_name
        self.timeout = timeout

        if client is not None:
            self._client = client
            return

        api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise ValueError("OPENAI_API_KEY is required")

        self._client = openai.AsyncOpenAI(
            api_key=api_key,
            base_url=base_url or os.getenv("OPENAI_API_BASE"),
            organization=organization or os.getenv("OPENAI_ORG_ID"),
            timeout=timeout,
            max_retries=0,
        )

    async def call(
        self,
        *,
        model: str,
        messages: list[dict[str, Any]],
        max_tokens: int = 500,
        temperature: float = 0.7,
        top_p: float = 1.0,
        frequency_penalty: float = 0.0,
        presence_penalty: float = 0.0,
        stop: list[str] | None = None,
        **kwargs: Any,
    ) -> _LLMResponse:
        payload: Dict[str, Any] = {
            "model": model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "top_p": top_p,
            "frequency_penalty": frequency_penalty,
            "presence_penalty": presence_penalty,
        }
        if stop:
            payload["stop"] = stop
        payload.update(kwargs)

        try:
            response = await self._client.chat.completions.create(**payload)
        except _TRANSIENT_ERRORS as e:
            logger.warning("OpenAI transient failure: %s", e)
            raise BackendTransientError(f"OpenAI temporarily unavailable: {e}", cause=e) from e
        except _FATAL_ERRORS as e:
            logger.error("OpenAI rejected the request: %s", e)
            raise BackendFatalError(f"OpenAI rejected the request: {e}", cause=e) from e
        except openai.APIStatusError as e:
            if e.status_code >= 500:
                raise BackendTransientError(f"OpenAI server error: {e}", cause=e) from e
            raise BackendFatalError(f"OpenAI request failed: {e}", cause=e) from e

        return self._normalise(response)

    @staticmethod
    def _normalise(response: Any) -> _LLMResponse:
        choices = []
        for choice in getattr(response, "choices", None) or []:
            msg = getattr(choice, "message", None)
            choices.append(
                _Choice(
                    message={
                        "role": getattr(msg, "role", "assistant"),
                        "content": getattr(msg, "content", None),
                    }
                )
            )
        return _LLMResponse(choices=choices)
