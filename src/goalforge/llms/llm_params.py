"""
Type-safe model settings for a run.

``LLMParams`` is the opaque settings bag a caller attaches to a run.  The
run loop never reads it: planner and executor forward it to the backend,
which turns it into call keyword arguments.

Design:
    - ``extra = "forbid"`` catches typos immediately.
    - ``to_call_kwargs()`` returns only non-None values as a dict.
    - ``merge()`` layers caller overrides on top of defaults.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class LLMParams(BaseModel):
    """
    Model settings forwarded to the language backend.

    All fields are optional - only set what you need to override.

    Usage::

        from goalforge.llms.llm_params import LLMParams

        params = LLMParams(model="gpt-4o-mini", temperature=0.3)
        kwargs = params.to_call_kwargs()
        # → {"model": "gpt-4o-mini", "temperature": 0.3}
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    model: Optional[str] = Field(
        None,
        description="Model identifier. Falls back to the backend's default model.",
    )

    # --- Sampling ---
    temperature: Optional[float] = Field(
        None, ge=0.0, le=2.0,
        description="Sampling temperature. 0 = deterministic, 2 = max randomness.",
    )
    max_tokens: Optional[int] = Field(
        None, ge=1,
        description="Maximum tokens to generate.",
    )
    top_p: Optional[float] = Field(
        None, ge=0.0, le=1.0,
        description="Nucleus sampling. 0.1 = only top 10% probability mass.",
    )
    frequency_penalty: Optional[float] = Field(
        None, ge=-2.0, le=2.0,
        description="Penalize repeated tokens based on frequency.",
    )
    presence_penalty: Optional[float] = Field(
        None, ge=-2.0, le=2.0,
        description="Penalize tokens that appear at all in text so far.",
    )

    # --- Control ---
    seed: Optional[int] = Field(
        None,
        description="Fixed seed for deterministic/reproducible outputs.",
    )
    stop: Optional[List[str]] = Field(
        None,
        description="Stop sequences - generation halts when any of these appear.",
    )

    def to_call_kwargs(self) -> Dict[str, Any]:
        """
        Convert to a kwargs dict for ``llm.call()``, excluding ``None`` values.

        Returns:
            Dict of parameter name → value (only non-None entries).
        """
        return {k: v for k, v in self.model_dump().items() if v is not None}

    def merge(self, override: "LLMParams | None") -> "LLMParams":
        """
        Return a **new** instance with *override* values taking precedence.

        Only non-None fields from *override* replace fields in ``self``.
        """
        if override is None:
            return self
        base = self.to_call_kwargs()
        base.update(override.to_call_kwargs())
        return LLMParams(**base)
