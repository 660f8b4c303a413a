"""
TaskExecutor Component - Executes one task through the language backend.

The TaskExecutor is responsible for:
- Building the execution prompt (goal, task, bounded recent results)
- Calling the backend with transient retries
- Splitting the response into a result and follow-on tasks
- Discarding follow-on tasks that are already pending or done
"""

import logging
from typing import Iterable, List, NamedTuple, Optional, Sequence

from goalforge.agents.planning.prompt_strategy import (
    DefaultRunPromptStrategy,
    RunPromptStrategy,
)
from goalforge.agents.planning.task_parser import TaskListParser, dedupe_against
from goalforge.agents.task import Task
from goalforge.errors import ParseError
from goalforge.llms.base_llm import BaseLLM
from goalforge.llms.llm_params import LLMParams
from goalforge.llms.retry import RetryCallback, call_with_retry

NO_OUTPUT = "(no output)"


class ExecutionOutcome(NamedTuple):
    result: str
    new_tasks: List[str]


class TaskExecutor:
    """
    Executes a single task and proposes follow-on work.

    Only the ``max_context_results`` most recent completed results are
    included in the prompt; older ones are dropped first.
    """

    def __init__(
        self,
        llm: BaseLLM,
        *,
        prompt_strategy: Optional[RunPromptStrategy] = None,
        max_context_results: int = 5,
        max_new_tasks: int = 5,
        max_retries: int = 0,
        backoff: float = 0.0,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the TaskExecutor.

        Args:
            llm: Language backend
            prompt_strategy: Builds the execution prompt
            max_context_results: Completed results shown to the backend
            max_new_tasks: Follow-on tasks accepted per execution
            max_retries: Transient-error retries per backend call
            backoff: Base retry delay in seconds
        """
        self._llm = llm
        self._prompt_strategy = prompt_strategy or DefaultRunPromptStrategy()
        self._max_context_results = max_context_results
        self._max_new_tasks = max_new_tasks
        self._max_retries = max_retries
        self._backoff = backoff
        self._logger = logger or logging.getLogger(__name__)
        self._parser = TaskListParser(logger=self._logger)

    async def execute(
        self,
        goal: str,
        task: Task,
        completed: Sequence[Task],
        config: Optional[LLMParams] = None,
        *,
        language: str = "English",
        known_descriptions: Iterable[str] = (),
        on_retry: Optional[RetryCallback] = None,
    ) -> ExecutionOutcome:
        """
        Execute *task* in the context of *goal*.

        Args:
            goal: The run's immutable goal
            task: Task to execute
            completed: Completed tasks so far, oldest first
            config: Model settings forwarded to the backend
            language: Response language
            known_descriptions: Pending and completed task descriptions;
                proposals matching any of them are discarded
            on_retry: Called before each transient-error retry

        Returns:
            ``(result, new_tasks)``; ``new_tasks`` may be empty

        Raises:
            BackendError: if the backend fails after retries
        """
        prompt = self._prompt_strategy.build_execution_prompt(
            goal,
            language,
            task.description,
            self.recent_results(completed),
            self._max_new_tasks,
        )
        self._logger.debug("Executing task #%d (%d-char prompt)", task.id, len(prompt))

        response = await call_with_retry(
            lambda: self._llm.generate(prompt, config),
            max_retries=self._max_retries,
            backoff=self._backoff,
            logger=self._logger,
            on_retry=on_retry,
        )

        result, section = self._parser.split_result(response)
        new_tasks: List[str] = []
        if section is not None and self._max_new_tasks > 0:
            try:
                proposed = self._parser.parse(section, allow_bare_line=True)
            except ParseError as e:
                self._logger.debug("No follow-on tasks for #%d: %s", task.id, e)
            else:
                known = [task.description, *known_descriptions]
                new_tasks = dedupe_against(proposed, known)[: self._max_new_tasks]
                dropped = len(proposed) - len(new_tasks)
                if dropped:
                    self._logger.debug("Discarded %d repeated or excess follow-on task(s)", dropped)

        return ExecutionOutcome(result=result or NO_OUTPUT, new_tasks=new_tasks)

    def recent_results(self, completed: Sequence[Task]) -> List[tuple]:
        """``(description, result)`` of the most recent successful tasks."""
        if self._max_context_results <= 0:
            return []
        done = [t for t in completed if t.result is not None]
        return [(t.description, t.result) for t in done[-self._max_context_results:]]
