# File: src/goalforge/llms/mock_llm.py
import asyncio
from collections import deque
from collections.abc import Callable, Iterable
from typing import Any, Union

from .base_llm import BaseLLM

Reply = Union[str, BaseException, Callable[[str], str]]


class MockLLM(BaseLLM):
    """Scripted language backend for tests and offline demos.

    * Each ``call()`` pops the next scripted reply.  A ``str`` is returned
      as content, an exception instance is raised, a callable is invoked
      with the prompt.
    * Once the script is exhausted, ``responder`` (if given) answers every
      prompt; otherwise the prompt is echoed back.
    * ``gate`` (an ``asyncio.Event``) holds every call until it is set,
      which lets tests observe a backend call that is still in flight.
    """

    model_name: str = "mock-model"

    def __init__(
        self,
        responses: Iterable[Reply] | None = None,
        *,
        responder: Callable[[str], str] | None = None,
        model_name: str = "mock-model",
        delay: float = 0.0,
        gate: asyncio.Event | None = None,
    ):
        self.model_name = model_name
        self.responder = responder
        self.delay = delay
        self.gate = gate
        self._script: deque[Reply] = deque(responses or [])
        self.prompts: list[str] = []
        self.call_kwargs: list[dict[str, Any]] = []
        self._call_count = 0

    # ------------------------------------------------------------------ #
    # Internal response types                                             #
    # ------------------------------------------------------------------ #

    class Message:
        def __init__(self, content: str | None = None):
            self.content = content

    class Choice:
        def __init__(self, message: "MockLLM.Message"):
            self.message = message

    class LLMResponse:
        def __init__(self, choices: list["MockLLM.Choice"]):
            self.choices = choices

    @property
    def call_count(self) -> int:
        return self._call_count

    def queue(self, *replies: Reply) -> None:
        """Append more scripted replies."""
        self._script.extend(replies)

    # ------------------------------------------------------------------ #
    # Non-streaming call                                                  #
    # ------------------------------------------------------------------ #

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
    ) -> "MockLLM.LLMResponse":
        self._call_count += 1
        prompt = messages[-1].get("content", "")
        self.prompts.append(prompt)
        self.call_kwargs.append(
            {"model": model, "max_tokens": max_tokens, "temperature": temperature, **kwargs}
        )

        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)

        reply = self._next_reply(prompt)
        return self.LLMResponse([self.Choice(self.Message(content=reply))])

    # ------------------------------------------------------------------ #
    # Private helpers                                                     #
    # ------------------------------------------------------------------ #

    def _next_reply(self, prompt: str) -> str:
        if self._script:
            reply = self._script.popleft()
            if isinstance(reply, BaseException):
                raise reply
            if callable(reply):
                return reply(prompt)
            return reply
        if self.responder is not None:
            return self.responder(prompt)
        return f"Echo: {prompt}"
