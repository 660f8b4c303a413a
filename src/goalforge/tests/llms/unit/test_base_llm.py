"""
Tests for BaseLLM.generate - prompt in, text out.

Covers:
 - Content extraction (attribute- and dict-style responses)
 - LLMParams forwarding and model override
 - Failure classification into transient / fatal backend errors
"""

import asyncio

import httpx
import pytest

from goalforge.errors import BackendFatalError, BackendTransientError
from goalforge.llms.base_llm import BaseLLM
from goalforge.llms.llm_params import LLMParams
from goalforge.llms.mock_llm import MockLLM


class RaisingLLM(BaseLLM):
    def __init__(self, exc):
        self.exc = exc

    async def call(self, **kwargs):
        raise self.exc


class DictLLM(BaseLLM):
    def __init__(self, response):
        self.response = response

    async def call(self, **kwargs):
        return self.response


class TestGenerate:

    @pytest.mark.asyncio
    async def test_returns_content(self):
        llm = MockLLM(["hello"])
        assert await llm.generate("hi") == "hello"
        assert llm.prompts == ["hi"]

    @pytest.mark.asyncio
    async def test_params_are_forwarded(self):
        llm = MockLLM(["ok"])
        await llm.generate("hi", LLMParams(model="gpt-x", temperature=0.2, max_tokens=64))
        kwargs = llm.call_kwargs[0]
        assert kwargs["model"] == "gpt-x"
        assert kwargs["temperature"] == 0.2
        assert kwargs["max_tokens"] == 64

    @pytest.mark.asyncio
    async def test_default_model(self):
        llm = MockLLM(["ok"], model_name="local-model")
        await llm.generate("hi")
        assert llm.call_kwargs[0]["model"] == "local-model"

    @pytest.mark.asyncio
    async def test_dict_style_response(self):
        llm = DictLLM({"choices": [{"message": {"role": "assistant", "content": "dict"}}]})
        assert await llm.generate("x") == "dict"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("response", [None, {"choices": []}, {"choices": [{"message": None}]}])
    async def test_missing_content_is_empty(self, response):
        assert await DictLLM(response).generate("x") == ""


class TestErrorClassification:

    @pytest.mark.asyncio
    async def test_backend_errors_pass_through(self):
        original = BackendTransientError("rate limited")
        with pytest.raises(BackendTransientError) as info:
            await RaisingLLM(original).generate("x")
        assert info.value is original

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "exc",
        [asyncio.TimeoutError(), httpx.ReadTimeout("slow")],
    )
    async def test_timeouts_are_transient(self, exc):
        with pytest.raises(BackendTransientError) as info:
            await RaisingLLM(exc).generate("x")
        assert info.value.retryable is True
        assert info.value.cause is exc

    @pytest.mark.asyncio
    async def test_unknown_errors_are_fatal(self):
        with pytest.raises(BackendFatalError) as info:
            await RaisingLLM(ValueError("bad")).generate("x")
        assert info.value.retryable is False
