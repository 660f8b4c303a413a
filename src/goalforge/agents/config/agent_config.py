# src/goalforge/agents/config/agent_config.py
from enum import Enum

from pydantic import BaseModel, Field


class RunMode(str, Enum):
    """Caller-controlled advance mode for a run."""

    AUTOMATIC = "automatic"  # Loop self-advances without waiting
    PAUSE = "pause"  # One task per explicit step signal
    STOP_REQUESTED = "stop_requested"  # Loop exits at the next checkpoint


class RunStatus(str, Enum):
    """Life-cycle state of a run. Owned by the run loop."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"


class StopReason(str, Enum):
    """Why a run reached ``RunStatus.STOPPED``."""

    COMPLETED = "completed"
    STOPPED = "stopped"
    LOOP_LIMIT = "loop_limit"
    FAILED = "failed"


class AgentConfig(BaseModel):
    """Run-loop tunables. Model settings travel separately as ``LLMParams``."""

    max_task_attempts: int = Field(
        default=2,
        ge=1,
        description="Attempts at one task (or at planning) before the run is aborted (2 = one retry).",
    )
    backend_max_retries: int = Field(
        default=0,
        ge=0,
        description="Extra retries inside a single backend call on transient errors; each one is reported.",
    )
    retry_backoff: float = Field(
        default=0.0,
        ge=0.0,
        description="Base delay in seconds between transient retries (doubles each retry).",
    )
    max_context_results: int = Field(
        default=5,
        ge=0,
        description="Most recent completed results included in execution prompts.",
    )
    max_loops: int | None = Field(
        default=25,
        ge=1,
        description="Maximum tasks executed per run. None disables the limit.",
    )
    max_new_tasks: int = Field(
        default=5,
        ge=0,
        description="Follow-on tasks accepted from a single execution.",
    )
    show_thinking: bool = Field(
        default=False,
        description="Emit Thinking messages while planning and when follow-on tasks are queued.",
    )
    verbose: bool = Field(default=False, description="Enable detailed logging")
