# src/goalforge/agents/run.py
"""
Run - one execution of a goal, from start to terminal ``STOPPED``.

The caller owns the run and may read it at any time, change its mode,
request a single step, or request a stop.  ``status``, the completed-task
record and ``stop_reason`` belong to the run loop.  A stopped run is never
restarted in place; retrying means creating a new run.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from goalforge.agents.config.agent_config import RunMode, RunStatus, StopReason
from goalforge.agents.control import ModeController
from goalforge.agents.task import Task
from goalforge.errors import RunStateError
from goalforge.llms.llm_params import LLMParams


class TaskSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    description: str
    result: Optional[str] = None
    error: Optional[str] = None


class RunSnapshot(BaseModel):
    """Read-only export of a stopped run, ready to be persisted."""

    model_config = ConfigDict(frozen=True)

    name: str
    goal: str
    language: str
    stop_reason: Optional[StopReason] = None
    tasks: List[TaskSnapshot] = Field(default_factory=list)

    @property
    def completed(self) -> bool:
        return self.stop_reason == StopReason.COMPLETED

    def to_dict(self):
        return self.model_dump(mode="json")


class Run(BaseModel):
    """
    State of one goal execution.

    Example:
        ```python
        run = Run(name="PartyBot", goal="Plan a birthday party")
        run.set_mode(RunMode.PAUSE)
        run.request_step()
        ```
    """

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    name: str = Field(..., min_length=1, description="Short caller-supplied identifier")
    goal: str = Field(..., min_length=1, description="Natural-language objective")
    language: str = Field(default="English", description="Response language for the backend")
    config: LLMParams = Field(
        default_factory=LLMParams,
        description="Model settings, forwarded to the backend and otherwise ignored",
    )
    mode: RunMode = Field(default=RunMode.AUTOMATIC)
    status: RunStatus = Field(default=RunStatus.IDLE)
    stop_reason: Optional[StopReason] = None
    completed: List[Task] = Field(default_factory=list, description="Executed tasks, in order")
    created_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    _controller: ModeController = PrivateAttr()

    def model_post_init(self, __context) -> None:
        self._controller = ModeController(self)

    @property
    def controller(self) -> ModeController:
        return self._controller

    @property
    def is_stopped(self) -> bool:
        return self.status == RunStatus.STOPPED

    # ------------------------------------------------------------------ #
    # Owner controls                                                      #
    # ------------------------------------------------------------------ #

    def set_mode(self, mode: RunMode | str) -> None:
        self._controller.set_mode(mode)

    def request_step(self) -> bool:
        return self._controller.request_step()

    def request_stop(self) -> None:
        self._controller.request_stop()

    # ------------------------------------------------------------------ #
    # Persistence export                                                  #
    # ------------------------------------------------------------------ #

    def snapshot(self) -> RunSnapshot:
        """Export name, goal and executed tasks once the run has stopped.

        Raises:
            RunStateError: if the run has not stopped yet.
        """
        if not self.is_stopped:
            raise RunStateError(
                f"Run '{self.name}' is {self.status.value}; snapshots are taken once stopped"
            )
        return RunSnapshot(
            name=self.name,
            goal=self.goal,
            language=self.language,
            stop_reason=self.stop_reason,
            tasks=[
                TaskSnapshot(
                    id=t.id,
                    description=t.description,
                    result=t.result,
                    error=t.error,
                )
                for t in self.completed
            ],
        )
