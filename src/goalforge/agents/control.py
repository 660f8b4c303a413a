"""
ModeController - the mode/status state machine of a run.

The caller mutates ``mode`` (and may request a single step or a stop) at
any time; the run loop only observes those requests at its checkpoints:

* Checkpoint A - immediately before popping the next task.
* Checkpoint B - immediately after a task's result is emitted.

Status transitions::

    IDLE ──start──▶ RUNNING ◀──automatic / step──▶ PAUSED
                       │                              │
                       └──stop / exhausted / failure──┴──▶ STOPPED

``STOPPED`` is terminal.  All methods must be called from the event loop
thread that runs the loop.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Dict, FrozenSet

from goalforge.agents.config.agent_config import RunMode, RunStatus
from goalforge.errors import InvalidInputError, RunStateError

if TYPE_CHECKING:
    from goalforge.agents.run import Run


_TRANSITIONS: Dict[RunStatus, FrozenSet[RunStatus]] = {
    RunStatus.IDLE: frozenset({RunStatus.RUNNING, RunStatus.STOPPED}),
    RunStatus.RUNNING: frozenset({RunStatus.PAUSED, RunStatus.STOPPED}),
    RunStatus.PAUSED: frozenset({RunStatus.RUNNING, RunStatus.STOPPED}),
    RunStatus.STOPPED: frozenset(),
}


class ModeController:
    """Owns the signals between a run's caller and its run loop."""

    def __init__(self, run: "Run", logger: logging.Logger | None = None) -> None:
        self._run = run
        self._logger = logger or logging.getLogger(__name__)
        self._wakeup = asyncio.Event()
        self._step_pending = False

    # ------------------------------------------------------------------ #
    # Caller side                                                         #
    # ------------------------------------------------------------------ #

    @property
    def mode(self) -> RunMode:
        return self._run.mode

    @property
    def stop_requested(self) -> bool:
        return self._run.mode == RunMode.STOP_REQUESTED

    @property
    def step_pending(self) -> bool:
        return self._step_pending

    def set_mode(self, mode: RunMode | str) -> None:
        """Switch between automatic and pause, or request a stop.

        A stop request is sticky: once requested, the mode can no longer
        be changed back.
        """
        try:
            mode = RunMode(mode)
        except ValueError as e:
            raise InvalidInputError(f"Unknown run mode: {mode!r}") from e

        if self.stop_requested and mode != RunMode.STOP_REQUESTED:
            self._logger.debug("Ignoring mode change to %s: stop already requested", mode.value)
            return
        if self._run.status == RunStatus.STOPPED:
            self._logger.debug("Ignoring mode change to %s: run is stopped", mode.value)
            return

        self._run.mode = mode
        if mode != RunMode.PAUSE:
            self._step_pending = False
        self._wakeup.set()

    def request_step(self) -> bool:
        """Authorize exactly one more task while paused.

        Repeated requests before the loop consumes the step still authorize
        a single task.  Returns False (and does nothing) outside pause mode.
        """
        if self._run.mode != RunMode.PAUSE or self._run.status == RunStatus.STOPPED:
            self._logger.debug("Step request ignored in %s mode", self._run.mode.value)
            return False
        self._step_pending = True
        self._wakeup.set()
        return True

    def request_stop(self) -> None:
        self.set_mode(RunMode.STOP_REQUESTED)

    # ------------------------------------------------------------------ #
    # Run-loop side                                                       #
    # ------------------------------------------------------------------ #

    def consume_clearance(self) -> bool:
        """Return True when the loop may execute one more task now.

        Consumes a pending step signal in pause mode.
        """
        if self.stop_requested:
            return False
        if self._run.mode == RunMode.AUTOMATIC:
            return True
        if self._step_pending:
            self._step_pending = False
            return True
        return False

    def reset_signal(self) -> None:
        """Forget earlier wake-ups. Call before checking for clearance."""
        self._wakeup.clear()

    async def wait_for_signal(self) -> None:
        """Block until the caller changes mode, steps or stops.

        Returns at once if that already happened since ``reset_signal``.
        """
        await self._wakeup.wait()

    def transition(self, status: RunStatus) -> bool:
        """Move the run to *status*.

        Returns False when the run is already in that status.

        Raises:
            RunStateError: if the transition is not allowed.
        """
        current = self._run.status
        if status == current:
            return False
        if status not in _TRANSITIONS[current]:
            raise RunStateError(
                f"Run '{self._run.name}' cannot go from {current.value} to {status.value}"
            )
        self._run.status = status
        return True
