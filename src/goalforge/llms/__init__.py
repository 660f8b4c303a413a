"""Language backend layer for GoalForge."""

from goalforge.llms.base_llm import BaseLLM
from goalforge.llms.llm_params import LLMParams
from goalforge.llms.mock_llm import MockLLM
from goalforge.llms.retry import call_with_retry

__all__ = [
    "BaseLLM",
    "LLMParams",
    "MockLLM",
    "call_with_retry",
]
