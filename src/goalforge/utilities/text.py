"""Whitespace helpers for caller-supplied text."""

from typing import Optional


def is_empty_or_blank(value: Optional[str]) -> bool:
    """Return True for ``None``, ``""`` and whitespace-only strings."""
    return value is None or value.strip() == ""
