# src/goalforge/agents/agent.py
"""
AutonomousAgent - the caller's control surface.

Starts runs, steers them (automatic / pause / step / stop) and exposes
their results.  All heavy logic lives in:

- ``run_loop.py``       - the orchestrator and its checkpoints
- ``planning/``         - goal planning and response parsing
- ``components/``       - task execution
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from goalforge.agents.components.executor import TaskExecutor
from goalforge.agents.config.agent_config import AgentConfig, RunMode, RunStatus
from goalforge.agents.messages import Message
from goalforge.agents.planning.goal_planner import GoalPlanner
from goalforge.agents.run import Run, RunSnapshot
from goalforge.agents.run_loop import RunLoop
from goalforge.agents.sinks import MultiSink, StreamingSink
from goalforge.errors import InvalidInputError, RunStateError
from goalforge.llms.base_llm import BaseLLM
from goalforge.llms.llm_params import LLMParams
from goalforge.utilities.languages import find_language
from goalforge.utilities.text import is_empty_or_blank


class AutonomousAgent(BaseModel):
    """
    Runs goals, one at a time, against a language backend.

    Example:
        ```python
        agent = AutonomousAgent(llm=OpenAILLM(), sink=LoggingSink())
        run = agent.start("Plan a birthday party", name="PartyBot")
        agent.set_mode(RunMode.PAUSE)
        agent.request_step()
        await agent.wait()
        snapshot = agent.snapshot()
        ```

    Only one run is active per agent.  Independent agents sharing the same
    backend may run concurrently.
    """

    llm: BaseLLM = Field(..., description="Language backend used to plan and execute")
    config: AgentConfig = Field(default_factory=AgentConfig)
    sink: Any | None = Field(
        default=None,
        description="EventSink receiving every message and status change",
    )
    prompt_strategy: Any | None = Field(
        default=None,
        description="RunPromptStrategy; defaults to DefaultRunPromptStrategy",
    )

    # Private attributes
    _logger: logging.Logger = PrivateAttr()
    _run: Optional[Run] = PrivateAttr(default=None)
    _loop: Optional[RunLoop] = PrivateAttr(default=None)
    _task: Optional[asyncio.Task] = PrivateAttr(default=None)

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def __init__(self, **data):
        super().__init__(**data)
        self._initialize_logger("agent")

    def _initialize_logger(self, name: str) -> None:
        """Initialize the agent's logger."""
        self._logger = logging.getLogger(f"agent.{name}")
        handler = logging.StreamHandler()
        formatter = logging.Formatter(f"[%(levelname)s] {name}: %(message)s")
        handler.setFormatter(formatter)
        if not self._logger.handlers:
            self._logger.addHandler(handler)
        # We attach our own handler, so we should not also propagate to root.
        self._logger.propagate = False
        if self.config.verbose:
            self._logger.setLevel(logging.DEBUG)
        else:
            self._logger.setLevel(logging.INFO)

    # ------------------------------------------------------------------ #
    # State                                                               #
    # ------------------------------------------------------------------ #

    @property
    def current_run(self) -> Optional[Run]:
        return self._run

    @property
    def status(self) -> RunStatus:
        return self._run.status if self._run is not None else RunStatus.IDLE

    @property
    def is_active(self) -> bool:
        return self._run is not None and not self._run.is_stopped

    # ------------------------------------------------------------------ #
    # LIFECYCLE                                                           #
    # ------------------------------------------------------------------ #

    def start(
        self,
        goal: str,
        name: str,
        language: str = "English",
        config: Optional[LLMParams] = None,
        initial_mode: RunMode | str = RunMode.AUTOMATIC,
        *,
        extra_sink: Any | None = None,
    ) -> Run:
        """
        Create a run and schedule its loop on the running event loop.

        Args:
            goal: Natural-language objective
            name: Short identifier for the run
            language: Locale code or language name for responses
            config: Model settings forwarded to the backend
            initial_mode: ``AUTOMATIC`` or ``PAUSE``
            extra_sink: Additional sink that sees this run's events first

        Returns:
            The new ``Run`` (status ``IDLE`` until the loop gets scheduled)

        Raises:
            InvalidInputError: blank goal or name, or an unknown mode
            RunStateError: a run is already active on this agent
        """
        if self.is_active:
            raise RunStateError(
                f"Run '{self._run.name}' is still {self._run.status.value}; stop it first"
            )
        if is_empty_or_blank(name):
            raise InvalidInputError("A run needs a non-empty name")
        if is_empty_or_blank(goal):
            raise InvalidInputError("A run needs a non-empty goal")
        try:
            mode = RunMode(initial_mode)
        except ValueError as e:
            raise InvalidInputError(f"Unknown run mode: {initial_mode!r}") from e

        name = name.strip()
        self._initialize_logger(name)

        run = Run(
            name=name,
            goal=goal.strip(),
            language=find_language(language).name,
            config=config or LLMParams(),
            mode=mode,
        )
        sink = MultiSink(extra_sink, self.sink) if extra_sink is not None else self.sink
        self._loop = RunLoop(
            run,
            planner=GoalPlanner(
                self.llm,
                prompt_strategy=self.prompt_strategy,
                max_retries=self.config.backend_max_retries,
                backoff=self.config.retry_backoff,
                logger=self._logger,
            ),
            executor=TaskExecutor(
                self.llm,
                prompt_strategy=self.prompt_strategy,
                max_context_results=self.config.max_context_results,
                max_new_tasks=self.config.max_new_tasks,
                max_retries=self.config.backend_max_retries,
                backoff=self.config.retry_backoff,
                logger=self._logger,
            ),
            sink=sink,
            config=self.config,
            logger=self._logger,
        )
        self._run = run
        self._task = asyncio.get_running_loop().create_task(
            self._loop.run(), name=f"goalforge-run-{name}"
        )
        self._logger.info("Starting run '%s' in %s mode", name, mode.value.upper())
        return run

    async def wait(self) -> Run:
        """Wait for the current run to stop and return it."""
        if self._task is None:
            raise RunStateError("No run has been started")
        await self._task
        return self._run

    async def run(
        self,
        goal: str,
        name: str,
        language: str = "English",
        config: Optional[LLMParams] = None,
    ) -> RunSnapshot:
        """Start a run in automatic mode and return its snapshot once stopped."""
        self.start(goal, name, language, config)
        await self.wait()
        return self.snapshot()

    async def stream(
        self,
        goal: str,
        name: str,
        language: str = "English",
        config: Optional[LLMParams] = None,
        initial_mode: RunMode | str = RunMode.AUTOMATIC,
    ) -> AsyncIterator[Message]:
        """Start a run and yield its messages in emission order until it stops."""
        streaming = StreamingSink()
        self.start(goal, name, language, config, initial_mode, extra_sink=streaming)
        async for message in streaming:
            yield message
        await self._task

    def restart(self) -> Run:
        """Start a fresh run with the previous run's name, goal and settings.

        Raises:
            RunStateError: when there is no previous run or it is still active
        """
        previous = self._run
        if previous is None:
            raise RunStateError("No previous run to restart")
        if not previous.is_stopped:
            raise RunStateError(f"Run '{previous.name}' is still {previous.status.value}")
        return self.start(previous.goal, previous.name, previous.language, previous.config)

    # ------------------------------------------------------------------ #
    # Controls                                                            #
    # ------------------------------------------------------------------ #

    def set_mode(self, mode: RunMode | str) -> None:
        self._require_run().set_mode(mode)

    def pause(self) -> None:
        self.set_mode(RunMode.PAUSE)

    def resume(self) -> None:
        self.set_mode(RunMode.AUTOMATIC)

    def request_step(self) -> bool:
        """Authorize one more task while paused. Returns False outside pause mode."""
        return self._require_run().request_step()

    def stop(self, abandon_in_flight: bool = False) -> None:
        """Request a stop, observed at the loop's next checkpoint.

        With ``abandon_in_flight`` the pending backend call is cancelled
        instead of awaited.
        """
        run = self._require_run()
        run.request_stop()
        if abandon_in_flight and self._loop is not None:
            self._loop.abandon_in_flight()

    def snapshot(self) -> RunSnapshot:
        return self._require_run().snapshot()

    def _require_run(self) -> Run:
        if self._run is None:
            raise RunStateError("No run has been started")
        return self._run
