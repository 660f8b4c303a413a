# File: src/goalforge/llms/base_llm.py
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from goalforge.errors import BackendError, BackendFatalError, BackendTransientError
from goalforge.llms.llm_params import LLMParams

logger = logging.getLogger(__name__)


class BaseLLM(ABC):
    """Abstract base class for language backend adapters.

    Subclasses **must** implement ``call()`` - a chat-completion style
    request/response.  The run loop only ever uses ``generate()``, which
    wraps ``call()`` into the "prompt in, text out" capability and
    normalises failures into ``BackendTransientError`` /
    ``BackendFatalError``.

    Implementations must be safe for concurrent independent calls: no
    conversation state is kept between calls.
    """

    model_name: str = "default"

    # ------------------------------------------------------------------ #
    # Chat-completion call                                                #
    # ------------------------------------------------------------------ #

    @abstractmethod
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
    ) -> Any:
        """Send messages to the model and return a complete response.

        The response must expose ``choices[0].message.content``
        (attribute- or dict-style).
        """
        raise NotImplementedError

    # ------------------------------------------------------------------ #
    # Prompt → text                                                       #
    # ------------------------------------------------------------------ #

    async def generate(self, prompt: str, params: LLMParams | None = None) -> str:
        """Generate text for a single prompt.

        ``params`` is forwarded verbatim; a ``model`` entry overrides the
        backend's default model.  Returns an empty string when the response
        carries no content.
        """
        call_kwargs = params.to_call_kwargs() if params is not None else {}
        model = call_kwargs.pop("model", None) or self.model_name
        logger.debug("Calling %s with a %d-char prompt", model, len(prompt))
        try:
            response = await self.call(
                model=model,
                messages=[{"role": "user", "content": prompt}],
                **call_kwargs,
            )
        except BackendError:
            raise
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise BackendTransientError(f"Backend timed out: {e}", cause=e) from e
        except Exception as e:
            raise BackendFatalError(f"Backend call failed: {e}", cause=e) from e

        return self._extract_content_from_response(response) or ""

    # ------------------------------------------------------------------ #
    # Helpers                                                              #
    # ------------------------------------------------------------------ #

    @staticmethod
    def _extract_content_from_response(response: Any) -> str | None:
        """Best-effort extraction of text content from a provider response.

        Handles both dict-style and attribute-style response objects.
        """
        if response is None:
            return None

        choices = getattr(response, "choices", None)
        if choices is None and isinstance(response, dict):
            choices = response.get("choices")
        if not choices:
            return None

        choice = choices[0]
        msg = choice.get("message") if isinstance(choice, dict) else getattr(choice, "message", None)
        if msg is None:
            return None

        if isinstance(msg, dict):
            return msg.get("content")
        return getattr(msg, "content", None)
