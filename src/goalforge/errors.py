"""
Error classes for GoalForge.

Backend errors surface to the run loop as user-visible Error messages;
parse errors are absorbed locally with a documented fallback; input and
state errors are raised to the caller before (or instead of) running.
"""

from __future__ import annotations

from typing import Any


class GoalForgeError(Exception):
    """Base exception for all GoalForge errors."""


class BackendError(GoalForgeError):
    """
    Raised when the language backend fails to produce text.

    Attributes:
        retryable: Whether repeating the same call may succeed
        cause: The underlying exception, if any
    """

    def __init__(
        self,
        message: str,
        *,
        retryable: bool = False,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.retryable = retryable
        self.cause = cause


class BackendTransientError(BackendError):
    """Rate limits, timeouts and dropped connections. Safe to retry."""

    def __init__(self, message: str, *, cause: BaseException | None = None):
        super().__init__(message, retryable=True, cause=cause)


class BackendFatalError(BackendError):
    """Authentication, permission or malformed-request failures. Never retried."""

    def __init__(self, message: str, *, cause: BaseException | None = None):
        super().__init__(message, retryable=False, cause=cause)


class ParseError(GoalForgeError):
    """
    Raised when a backend response cannot be read as a task list.

    Never aborts a run: the planner falls back to the goal itself and the
    executor treats it as "no follow-on work".
    """

    def __init__(self, message: str, *, raw_output: Any = None):
        super().__init__(message)
        self.raw_output = raw_output


class InvalidInputError(GoalForgeError, ValueError):
    """Raised when a run is requested with a blank goal or name."""


class RunStateError(GoalForgeError, RuntimeError):
    """Raised when a control operation does not fit the run's life-cycle state."""
