"""Planning components for GoalForge runs."""

from goalforge.agents.planning.goal_planner import GoalPlanner
from goalforge.agents.planning.task_parser import TaskListParser, dedupe_against
from goalforge.agents.planning.prompt_strategy import (
    RunPromptStrategy,
    DefaultRunPromptStrategy,
)

__all__ = [
    "GoalPlanner",
    "TaskListParser",
    "dedupe_against",
    "RunPromptStrategy",
    "DefaultRunPromptStrategy",
]
