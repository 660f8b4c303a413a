"""Agent framework for GoalForge."""

from goalforge.agents.agent import AutonomousAgent
from goalforge.agents.config.agent_config import (
    AgentConfig,
    RunMode,
    RunStatus,
    StopReason,
)
from goalforge.agents.control import ModeController
from goalforge.agents.messages import (
    GOAL_COMPLETE,
    Message,
    MessageKind,
    TaskRecord,
    replay_messages,
)
from goalforge.agents.run import Run, RunSnapshot, TaskSnapshot
from goalforge.agents.run_loop import RunLoop
from goalforge.agents.sinks import (
    CallbackSink,
    EventSink,
    LoggingSink,
    MultiSink,
    NullSink,
    RecordingSink,
    StreamingSink,
)
from goalforge.agents.task import Task, TaskStatus
from goalforge.agents.task_queue import TaskQueue

__all__ = [
    "AutonomousAgent",
    "AgentConfig",
    "RunMode",
    "RunStatus",
    "StopReason",
    "ModeController",
    "GOAL_COMPLETE",
    "Message",
    "MessageKind",
    "TaskRecord",
    "replay_messages",
    "Run",
    "RunSnapshot",
    "TaskSnapshot",
    "RunLoop",
    "CallbackSink",
    "EventSink",
    "LoggingSink",
    "MultiSink",
    "NullSink",
    "RecordingSink",
    "StreamingSink",
    "Task",
    "TaskStatus",
    "TaskQueue",
]
