"""
GoalPlanner - turns a goal into the initial ordered task list.

One backend call per plan (plus transient retries).  The response is read
with ``TaskListParser``; when nothing can be read the goal itself becomes
the single task, so a plan is never empty.
"""

import logging
from typing import List, Optional

from goalforge.agents.planning.prompt_strategy import (
    DefaultRunPromptStrategy,
    RunPromptStrategy,
)
from goalforge.agents.planning.task_parser import TaskListParser
from goalforge.errors import ParseError
from goalforge.llms.base_llm import BaseLLM
from goalforge.llms.llm_params import LLMParams
from goalforge.llms.retry import RetryCallback, call_with_retry


class GoalPlanner:
    """Creates the first batch of tasks for a run.

    Decoupled from the agent: it receives the backend and prompt strategy
    at construction so it can be unit-tested in isolation.
    """

    def __init__(
        self,
        llm: BaseLLM,
        *,
        prompt_strategy: Optional[RunPromptStrategy] = None,
        max_retries: int = 0,
        backoff: float = 0.0,
        logger: Optional[logging.Logger] = None,
    ):
        self._llm = llm
        self._prompt_strategy = prompt_strategy or DefaultRunPromptStrategy()
        self._max_retries = max_retries
        self._backoff = backoff
        self._logger = logger or logging.getLogger(__name__)
        self._parser = TaskListParser(logger=self._logger)

    async def plan(
        self,
        goal: str,
        language: str = "English",
        config: Optional[LLMParams] = None,
        *,
        on_retry: Optional[RetryCallback] = None,
    ) -> List[str]:
        """Return a non-empty list of task descriptions for *goal*.

        Raises:
            BackendError: if the backend fails after retries.
        """
        prompt = self._prompt_strategy.build_planning_prompt(goal, language)
        self._logger.debug("Planning prompt built (%d chars)", len(prompt))

        response = await call_with_retry(
            lambda: self._llm.generate(prompt, config),
            max_retries=self._max_retries,
            backoff=self._backoff,
            logger=self._logger,
            on_retry=on_retry,
        )

        try:
            tasks = self._parser.parse(response)
        except ParseError as e:
            self._logger.warning("Could not read a task list (%s); using the goal as the only task", e)
            return [goal]

        self._logger.info("Planned %d task(s)", len(tasks))
        return tasks
