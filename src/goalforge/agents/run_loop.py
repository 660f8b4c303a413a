"""
RunLoop - drives one run from IDLE to STOPPED.

Plans the goal once, then drains the task queue one task at a time,
honouring the run's ModeController at two checkpoints:

* before popping the next task (pause / stop are observed here), and
* after a task's result has been emitted (stop is observed here).

Every state change is pushed to the event sink as it happens; the loop
keeps no reference to a message after emitting it.  The only places the
loop suspends are the backend calls and the pause wait.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, List, Optional, TypeVar

from goalforge.agents.components.executor import TaskExecutor
from goalforge.agents.config.agent_config import AgentConfig, RunStatus, StopReason
from goalforge.agents.messages import GOAL_COMPLETE, Message
from goalforge.agents.planning.goal_planner import GoalPlanner
from goalforge.agents.planning.task_parser import dedupe_against
from goalforge.agents.run import Run
from goalforge.agents.sinks import EventSink, NullSink, dispatch
from goalforge.agents.task import Task, TaskStatus
from goalforge.agents.task_queue import TaskQueue
from goalforge.errors import BackendError, RunStateError
from goalforge.llms.retry import RetryCallback

T = TypeVar("T")

RUN_STOPPED = "Run stopped."


class RunLoop:
    """Orchestrates planning and task execution for a single run."""

    def __init__(
        self,
        run: Run,
        *,
        planner: GoalPlanner,
        executor: TaskExecutor,
        sink: Optional[EventSink] = None,
        config: Optional[AgentConfig] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._run = run
        self._planner = planner
        self._executor = executor
        self._sink = sink or NullSink()
        self._config = config or AgentConfig()
        self._logger = logger or logging.getLogger(__name__)
        self._controller = run.controller
        self._queue = TaskQueue()
        self._executing: Optional[Task] = None
        self._executed = 0
        self._in_flight: Optional[asyncio.Future] = None
        self._abandoned = False

    @property
    def run_state(self) -> Run:
        return self._run

    @property
    def pending(self) -> List[str]:
        """Descriptions of tasks still waiting, oldest first."""
        return self._queue.descriptions

    @property
    def executed_count(self) -> int:
        return self._executed

    def abandon_in_flight(self) -> bool:
        """Cancel the backend call that is currently pending, if any.

        Pair with a stop request; the interrupted task is force-completed
        with an error and the run stops.
        """
        if self._in_flight is None or self._in_flight.done():
            return False
        self._abandoned = True
        self._in_flight.cancel()
        return True

    # ------------------------------------------------------------------ #
    # Main loop                                                           #
    # ------------------------------------------------------------------ #

    async def run(self) -> None:
        """Execute the run until it is STOPPED.

        Raises:
            RunStateError: if the run was already started or stopped.
        """
        run = self._run
        if run.status == RunStatus.STOPPED:
            raise RunStateError(f"Run '{run.name}' is stopped; start a new run to retry")
        if run.status != RunStatus.IDLE:
            raise RunStateError(f"Run '{run.name}' has already been started")

        if self._controller.stop_requested:
            self._finish(StopReason.STOPPED, RUN_STOPPED)
            return

        self._set_status(RunStatus.RUNNING)
        self._logger.info("Run '%s' started: %s", run.name, run.goal)
        try:
            if await self._plan():
                await self._drain()
        except asyncio.CancelledError:
            self._abort_executing("Task abandoned: the run was cancelled.")
            self._finish(StopReason.STOPPED, "Run cancelled.")
            raise
        except Exception as e:
            self._logger.exception("Run '%s' failed unexpectedly", run.name)
            self._abort_executing(f"Task aborted by an unexpected error: {e}")
            self._emit(Message.error(f"Run aborted by an unexpected error: {e}"))
            self._finish(StopReason.FAILED)
            raise

    async def _plan(self) -> bool:
        run = self._run
        if self._config.show_thinking:
            self._emit(Message.thinking("Thinking about how to reach the goal..."))
        max_attempts = self._config.max_task_attempts
        attempts = 0
        while True:
            attempts += 1
            try:
                descriptions = await self._await_backend(
                    self._planner.plan(
                        run.goal, run.language, run.config, on_retry=self._report_retry()
                    )
                )
            except BackendError as e:
                stopping = self._controller.stop_requested
                if e.retryable and attempts < max_attempts and not stopping:
                    self._logger.warning(
                        "Planning failed (attempt %d/%d): %s", attempts, max_attempts, e
                    )
                    self._emit(Message.error(f"Planning failed, retrying: {e}"))
                    continue
                self._logger.error("Planning failed: %s", e)
                self._emit(Message.error(f"Could not plan the goal: {e}"))
                if e.retryable and stopping:
                    self._finish(StopReason.STOPPED, RUN_STOPPED)
                else:
                    self._finish(StopReason.FAILED)
                return False
            except asyncio.CancelledError:
                if not self._abandoned:
                    raise
                self._finish(StopReason.STOPPED, "Run stopped while planning.")
                return False
            break

        tasks = self._queue.extend(dedupe_against(descriptions, []))
        self._emit(Message.goal(run.goal))
        if self._config.show_thinking:
            self._emit(Message.thinking(self._describe_added(tasks)))
        return True

    async def _drain(self) -> None:
        while True:
            if not self._queue:
                self._finish(StopReason.COMPLETED, GOAL_COMPLETE)
                return
            if self._limit_reached():
                self._finish(
                    StopReason.LOOP_LIMIT,
                    f"Stopped after reaching the limit of {self._config.max_loops} tasks.",
                )
                return
            # Checkpoint A
            if not await self._clear_to_proceed():
                self._finish(StopReason.STOPPED, RUN_STOPPED)
                return

            task = self._queue.pop()
            if not await self._execute(task):
                return

            # Checkpoint B
            if self._controller.stop_requested:
                self._finish(StopReason.STOPPED, RUN_STOPPED)
                return

    async def _clear_to_proceed(self) -> bool:
        """Hold while paused. Returns False when a stop was requested."""
        while True:
            # A sink may step or stop from inside the PAUSED notification.
            self._controller.reset_signal()
            if self._controller.consume_clearance():
                self._set_status(RunStatus.RUNNING)
                return True
            if self._controller.stop_requested:
                return False
            self._set_status(RunStatus.PAUSED)
            await self._controller.wait_for_signal()

    # ------------------------------------------------------------------ #
    # One task                                                            #
    # ------------------------------------------------------------------ #

    async def _execute(self, task: Task) -> bool:
        """Run *task* to completion. Returns False when the run stopped."""
        run = self._run
        self._executing = task
        self._executed += 1
        max_attempts = self._config.max_task_attempts

        while True:
            task.mark_executing()
            self._emit(Message.task_executing(task))
            try:
                outcome = await self._await_backend(
                    self._executor.execute(
                        run.goal,
                        task,
                        run.completed,
                        run.config,
                        language=run.language,
                        known_descriptions=self._known_descriptions(),
                        on_retry=self._report_retry(task),
                    )
                )
            except BackendError as e:
                if not e.retryable:
                    self._fail_task(task, f"Task failed and cannot be retried: {e}")
                    self._finish(StopReason.FAILED)
                    return False
                if task.attempts >= max_attempts:
                    self._fail_task(
                        task,
                        f"Task failed {task.attempts} times in a row; aborting the run: {e}",
                    )
                    self._finish(StopReason.FAILED)
                    return False
                if self._controller.stop_requested:
                    self._fail_task(task, f"Task failed and the run was stopped before a retry: {e}")
                    self._finish(StopReason.STOPPED, RUN_STOPPED)
                    return False
                self._logger.warning(
                    "Task #%d failed (attempt %d/%d): %s", task.id, task.attempts, max_attempts, e
                )
                self._emit(Message.error(f"Task failed, retrying: {e}", task=task))
                continue
            except asyncio.CancelledError:
                if not self._abandoned:
                    raise
                self._fail_task(task, "Task abandoned: the run was stopped while it was executing.")
                self._finish(StopReason.STOPPED, RUN_STOPPED)
                return False
            break

        self._emit(Message.task_completed(task, outcome.result))
        task.mark_completed(outcome.result)
        run.completed.append(task)
        self._executing = None

        added = self._queue.extend(outcome.new_tasks)
        if added and self._config.show_thinking:
            self._emit(Message.thinking(self._describe_added(added)))
        return True

    def _fail_task(self, task: Task, reason: str) -> None:
        self._logger.error("Task #%d: %s", task.id, reason)
        self._emit(Message.error(reason, task=task, terminal=True))
        task.mark_failed(reason)
        self._run.completed.append(task)
        self._executing = None

    def _abort_executing(self, reason: str) -> None:
        task = self._executing
        if task is not None and task.status == TaskStatus.EXECUTING:
            self._fail_task(task, reason)

    # ------------------------------------------------------------------ #
    # Helpers                                                             #
    # ------------------------------------------------------------------ #

    async def _await_backend(self, coro: Awaitable[T]) -> T:
        self._in_flight = asyncio.ensure_future(coro)
        try:
            return await self._in_flight
        finally:
            self._in_flight = None

    def _report_retry(self, task: Optional[Task] = None) -> RetryCallback:
        """Callback that reports in-call backend retries as Error messages."""

        def _on_retry(attempt: int, error: BackendError) -> None:
            self._emit(
                Message.error(f"Backend call failed, retry {attempt}: {error}", task=task)
            )

        return _on_retry

    def _known_descriptions(self) -> List[str]:
        return self._queue.descriptions + [t.description for t in self._run.completed]

    def _limit_reached(self) -> bool:
        limit = self._config.max_loops
        return limit is not None and self._executed >= limit

    @staticmethod
    def _describe_added(tasks: List[Task]) -> str:
        listing = "; ".join(t.description for t in tasks)
        return f"Added {len(tasks)} task(s): {listing}"

    def _emit(self, message: Message) -> None:
        dispatch(self._sink.on_message, message, self._logger)

    def _set_status(self, status: RunStatus) -> None:
        previous = self._run.status
        if self._controller.transition(status):
            self._logger.info(
                "Run '%s': %s -> %s", self._run.name, previous.value, status.value
            )
            dispatch(self._sink.on_status_change, status, self._logger)

    def _finish(self, reason: StopReason, notice: Optional[str] = None) -> None:
        if self._run.is_stopped:
            return
        self._run.stop_reason = reason
        if notice:
            self._emit(Message.system_notice(notice))
        self._set_status(RunStatus.STOPPED)
        if self._queue:
            self._logger.debug("%d task(s) left unexecuted", len(self._queue))
