from goalforge.agents.config.agent_config import (
    AgentConfig,
    RunMode,
    RunStatus,
    StopReason,
)

__all__ = ["AgentConfig", "RunMode", "RunStatus", "StopReason"]
