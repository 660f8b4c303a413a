# src/goalforge/agents/task.py
"""
Task - one unit of work derived from a run's goal.

Tasks are created from descriptions produced by the goal planner (initial
batch) or by the task executor (follow-on batches).  The task queue owns
them while Pending; once executed they move to the run's completed list
and are never executed again.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class TaskStatus(str, Enum):
    PENDING = "pending"
    EXECUTING = "executing"
    COMPLETED = "completed"


class Task(BaseModel):
    """
    A single task in a run.

    Example:
        ```python
        task = Task(id=1, description="Find a venue")
        task.mark_executing()
        task.mark_completed("Booked the community hall")
        ```

    A task that failed for good is still ``COMPLETED``, with ``error`` set
    and ``result`` left empty.
    """

    id: int = Field(..., ge=1, description="Sequence number, unique within the run")
    description: str = Field(..., min_length=1, description="What to do")
    status: TaskStatus = Field(default=TaskStatus.PENDING)
    result: Optional[str] = Field(default=None)
    error: Optional[str] = Field(default=None)
    attempts: int = Field(default=0, description="Times execution was started")
    started_at: Optional[str] = None
    completed_at: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == TaskStatus.COMPLETED and self.error is None

    def mark_executing(self) -> None:
        self.status = TaskStatus.EXECUTING
        self.attempts += 1
        self.started_at = datetime.now(timezone.utc).isoformat()

    def mark_completed(self, result: str) -> None:
        self.status = TaskStatus.COMPLETED
        self.result = result
        self.error = None
        self.completed_at = datetime.now(timezone.utc).isoformat()

    def mark_failed(self, error: str) -> None:
        """Force-complete the task with an error; it will not run again."""
        self.status = TaskStatus.COMPLETED
        self.result = None
        self.error = error
        self.completed_at = datetime.now(timezone.utc).isoformat()
