from goalforge.agents.components.executor import ExecutionOutcome, TaskExecutor

__all__ = ["ExecutionOutcome", "TaskExecutor"]
