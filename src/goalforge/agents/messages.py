"""Progress message types for GoalForge runs.

``Message`` is the **public contract** a run emits to its event sink: an
append-only, emission-ordered stream.  Replaying the stream with
``replay_messages`` rebuilds the full task history without ever touching
the run itself.

Task messages mirror the task's status:

    EXECUTING  – ``value`` is the task description
    COMPLETED  – ``value`` is the result, ``info`` the description

Error messages that concern a task carry its ``task_id``; ``task_status``
is ``EXECUTING`` when the task will be retried and ``COMPLETED`` when the
failure was terminal for that task.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from goalforge.agents.task import Task, TaskStatus


class MessageKind(str, Enum):
    """Discriminator for run messages."""

    GOAL = "goal"
    TASK = "task"
    THINKING = "thinking"
    SYSTEM = "system"
    ERROR = "error"


GOAL_COMPLETE = "goal complete"


class Message(BaseModel):
    """A single progress record emitted by a run."""

    model_config = ConfigDict(use_enum_values=True, frozen=True)

    kind: MessageKind
    value: str

    # TASK / task-scoped ERROR
    task_id: Optional[int] = None
    task_status: Optional[TaskStatus] = None
    info: Optional[str] = None

    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_sse(self) -> str:
        """Serialize to a Server-Sent Events ``data:`` line (JSON)."""
        return f"data: {self.model_dump_json(exclude_none=True)}\n\n"

    # ------------------------------------------------------------------
    # Convenience constructors
    # ------------------------------------------------------------------

    @classmethod
    def goal(cls, goal: str) -> Message:
        return cls(kind=MessageKind.GOAL, value=goal)

    @classmethod
    def task_executing(cls, task: Task) -> Message:
        return cls(
            kind=MessageKind.TASK,
            value=task.description,
            task_id=task.id,
            task_status=TaskStatus.EXECUTING,
        )

    @classmethod
    def task_completed(cls, task: Task, result: str) -> Message:
        return cls(
            kind=MessageKind.TASK,
            value=result,
            task_id=task.id,
            task_status=TaskStatus.COMPLETED,
            info=task.description,
        )

    @classmethod
    def thinking(cls, text: str) -> Message:
        return cls(kind=MessageKind.THINKING, value=text)

    @classmethod
    def system_notice(cls, text: str) -> Message:
        return cls(kind=MessageKind.SYSTEM, value=text)

    @classmethod
    def error(
        cls,
        text: str,
        *,
        task: Task | None = None,
        terminal: bool = False,
    ) -> Message:
        if task is None:
            return cls(kind=MessageKind.ERROR, value=text)
        return cls(
            kind=MessageKind.ERROR,
            value=text,
            task_id=task.id,
            task_status=TaskStatus.COMPLETED if terminal else TaskStatus.EXECUTING,
            info=task.description,
        )


# ---------------------------------------------------------------------- #
# Replay                                                                  #
# ---------------------------------------------------------------------- #


@dataclass
class TaskRecord:
    """Task state as reconstructed from messages alone."""

    id: int
    description: str
    status: TaskStatus = TaskStatus.EXECUTING
    result: Optional[str] = None
    error: Optional[str] = None
    attempts: int = 0


def replay_messages(messages: Iterable[Message]) -> List[TaskRecord]:
    """Rebuild the executed-task history from a message sequence.

    Records are returned in order of first execution.  The result depends
    only on the messages and their order, so any consumer replaying the
    same stream arrives at the same task set.
    """
    records: dict[int, TaskRecord] = {}
    for message in messages:
        if message.task_id is None:
            continue
        record = records.get(message.task_id)
        if message.kind == MessageKind.TASK:
            if message.task_status == TaskStatus.EXECUTING:
                if record is None:
                    record = records[message.task_id] = TaskRecord(
                        id=message.task_id, description=message.value
                    )
                record.status = TaskStatus.EXECUTING
                record.attempts += 1
            elif message.task_status == TaskStatus.COMPLETED and record is not None:
                record.status = TaskStatus.COMPLETED
                record.result = message.value
                record.error = None
        elif message.kind == MessageKind.ERROR and record is not None:
            record.error = message.value
            if message.task_status == TaskStatus.COMPLETED:
                record.status = TaskStatus.COMPLETED
                record.result = None
    return list(records.values())
