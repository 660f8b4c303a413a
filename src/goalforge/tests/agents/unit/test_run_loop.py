"""
Tests for RunLoop - end-to-end run behaviour against scripted backends.

Covers:
- Happy path message sequence and terminal notice
- Retry, double failure and fatal failure handling
- Pause / step / resume / stop at both checkpoints
- Abandoning an in-flight backend call and host cancellation
- Follow-on task de-duplication and the loop limit
- Replaying the emitted stream
"""

import asyncio

import pytest

from goalforge.agents.components.executor import TaskExecutor
from goalforge.agents.config.agent_config import (
    AgentConfig,
    RunMode,
    RunStatus,
    StopReason,
)
from goalforge.agents.messages import GOAL_COMPLETE, MessageKind, replay_messages
from goalforge.agents.planning.goal_planner import GoalPlanner
from goalforge.agents.run import Run
from goalforge.agents.run_loop import RUN_STOPPED, RunLoop
from goalforge.agents.sinks import CallbackSink, MultiSink, RecordingSink
from goalforge.agents.task import TaskStatus
from goalforge.errors import BackendFatalError, BackendTransientError, RunStateError
from goalforge.llms.mock_llm import MockLLM

PARTY_PLAN = '["Book venue", "Send invites", "Order cake"]'

# ================================================================== #
# Test helpers                                                         #
# ================================================================== #


def _make_loop(
    plan_reply=PARTY_PLAN,
    exec_replies=(),
    *,
    mode=RunMode.AUTOMATIC,
    gate=None,
    sink=None,
    **config,
):
    """Build a RunLoop with separate planner / executor backends."""
    config.setdefault("backend_max_retries", 0)
    agent_config = AgentConfig(**config)
    plan_replies = list(plan_reply) if isinstance(plan_reply, (list, tuple)) else [plan_reply]
    plan_llm = MockLLM(plan_replies)
    exec_llm = MockLLM(list(exec_replies), responder=lambda prompt: "done", gate=gate)
    run = Run(name="PartyBot", goal="Plan a birthday party", mode=mode)
    recorder = RecordingSink()
    loop = RunLoop(
        run,
        planner=GoalPlanner(plan_llm, max_retries=agent_config.backend_max_retries),
        executor=TaskExecutor(exec_llm, max_retries=agent_config.backend_max_retries),
        sink=MultiSink(recorder, sink) if sink is not None else recorder,
        config=agent_config,
    )
    return loop, run, recorder, plan_llm, exec_llm


def _shape(messages):
    """(kind, task_id, task_status) triples for compact sequence assertions."""
    return [(m.kind, m.task_id, m.task_status) for m in messages]


# ================================================================== #
# Happy path                                                           #
# ================================================================== #


class TestCompletion:

    @pytest.mark.asyncio
    async def test_birthday_party(self):
        loop, run, sink, _, exec_llm = _make_loop()
        await loop.run()

        assert _shape(sink.messages) == [
            (MessageKind.GOAL, None, None),
            (MessageKind.TASK, 1, TaskStatus.EXECUTING),
            (MessageKind.TASK, 1, TaskStatus.COMPLETED),
            (MessageKind.TASK, 2, TaskStatus.EXECUTING),
            (MessageKind.TASK, 2, TaskStatus.COMPLETED),
            (MessageKind.TASK, 3, TaskStatus.EXECUTING),
            (MessageKind.TASK, 3, TaskStatus.COMPLETED),
            (MessageKind.SYSTEM, None, None),
        ]
        assert sink.messages[0].value == "Plan a birthday party"
        assert [m.value for m in sink.messages[1::2][:3]] == [
            "Book venue",
            "Send invites",
            "Order cake",
        ]
        assert sink.messages[-1].value == GOAL_COMPLETE
        assert run.status == RunStatus.STOPPED
        assert run.stop_reason == StopReason.COMPLETED
        assert sink.statuses == [RunStatus.RUNNING, RunStatus.STOPPED]
        assert [t.result for t in run.completed] == ["done", "done", "done"]
        assert exec_llm.call_count == 3

    @pytest.mark.asyncio
    async def test_completed_results_feed_later_prompts(self):
        loop, _, _, _, exec_llm = _make_loop(exec_replies=["Hall booked", "Invites sent", "Cake"])
        await loop.run()
        assert "Book venue: Hall booked" in exec_llm.prompts[2]
        assert "Send invites: Invites sent" in exec_llm.prompts[2]

    @pytest.mark.asyncio
    async def test_unreadable_plan_runs_goal_as_single_task(self):
        loop, run, _, _, _ = _make_loop(plan_reply="Sure! Let's get started.")
        await loop.run()
        assert [t.description for t in run.completed] == ["Plan a birthday party"]
        assert run.stop_reason == StopReason.COMPLETED

    @pytest.mark.asyncio
    async def test_run_cannot_be_started_twice(self):
        loop, _, _, _, _ = _make_loop()
        await loop.run()
        with pytest.raises(RunStateError):
            await loop.run()

    @pytest.mark.asyncio
    async def test_thinking_messages(self):
        loop, _, sink, _, _ = _make_loop(show_thinking=True)
        await loop.run()
        thinking = sink.of_kind(MessageKind.THINKING)
        assert len(thinking) == 2
        assert "Book venue" in thinking[1].value

    @pytest.mark.asyncio
    async def test_failing_sink_does_not_abort_run(self):
        def _boom(message):
            raise RuntimeError("sink down")

        loop, run, sink, _, _ = _make_loop(sink=CallbackSink(on_message=_boom))
        await loop.run()
        assert run.stop_reason == StopReason.COMPLETED
        assert sink.messages[-1].value == GOAL_COMPLETE


# ================================================================== #
# Failures                                                             #
# ================================================================== #


class TestFailures:

    @pytest.mark.asyncio
    async def test_retry_then_success(self):
        loop, run, sink, _, _ = _make_loop(exec_replies=[BackendTransientError("429"), "Hall booked"])
        await loop.run()
        assert _shape(sink.for_task(1)) == [
            (MessageKind.TASK, 1, TaskStatus.EXECUTING),
            (MessageKind.ERROR, 1, TaskStatus.EXECUTING),
            (MessageKind.TASK, 1, TaskStatus.EXECUTING),
            (MessageKind.TASK, 1, TaskStatus.COMPLETED),
        ]
        assert run.completed[0].attempts == 2
        assert run.completed[0].result == "Hall booked"
        assert run.stop_reason == StopReason.COMPLETED

    @pytest.mark.asyncio
    async def test_two_consecutive_failures_abort_run(self):
        loop, run, sink, _, exec_llm = _make_loop(
            exec_replies=[BackendTransientError("429"), BackendTransientError("429")]
        )
        await loop.run()
        errors = sink.of_kind(MessageKind.ERROR)
        assert len(errors) == 2
        assert errors[-1].task_status == TaskStatus.COMPLETED
        assert exec_llm.call_count == 2
        assert run.status == RunStatus.STOPPED
        assert run.stop_reason == StopReason.FAILED
        assert [t.description for t in run.completed] == ["Book venue"]
        assert run.completed[0].error is not None
        assert loop.pending == ["Send invites", "Order cake"]
        assert sink.messages[-1].kind == MessageKind.ERROR

    @pytest.mark.asyncio
    async def test_backend_retry_is_reported(self):
        loop, run, sink, _, exec_llm = _make_loop(
            exec_replies=[BackendTransientError("429")], backend_max_retries=1
        )
        await loop.run()
        assert _shape(sink.for_task(1)) == [
            (MessageKind.TASK, 1, TaskStatus.EXECUTING),
            (MessageKind.ERROR, 1, TaskStatus.EXECUTING),
            (MessageKind.TASK, 1, TaskStatus.COMPLETED),
        ]
        assert "retry 1" in sink.of_kind(MessageKind.ERROR)[0].value
        assert exec_llm.call_count == 4
        assert run.stop_reason == StopReason.COMPLETED

    @pytest.mark.asyncio
    async def test_planning_retry_then_success(self):
        loop, run, sink, plan_llm, _ = _make_loop(
            plan_reply=[BackendTransientError("503"), PARTY_PLAN]
        )
        await loop.run()
        assert _shape(sink.messages[:2]) == [
            (MessageKind.ERROR, None, None),
            (MessageKind.GOAL, None, None),
        ]
        assert plan_llm.call_count == 2
        assert run.stop_reason == StopReason.COMPLETED
        assert len(run.completed) == 3

    @pytest.mark.asyncio
    async def test_planning_fails_twice(self):
        loop, run, sink, plan_llm, exec_llm = _make_loop(
            plan_reply=[BackendTransientError("503"), BackendTransientError("503")]
        )
        await loop.run()
        assert _shape(sink.messages) == [(MessageKind.ERROR, None, None)] * 2
        assert sink.messages[-1].value.startswith("Could not plan the goal")
        assert plan_llm.call_count == 2
        assert exec_llm.call_count == 0
        assert run.stop_reason == StopReason.FAILED

    @pytest.mark.asyncio
    async def test_fatal_error_aborts_without_retry(self):
        loop, run, sink, _, exec_llm = _make_loop(exec_replies=[BackendFatalError("401")])
        await loop.run()
        assert _shape(sink.for_task(1)) == [
            (MessageKind.TASK, 1, TaskStatus.EXECUTING),
            (MessageKind.ERROR, 1, TaskStatus.COMPLETED),
        ]
        assert exec_llm.call_count == 1
        assert run.stop_reason == StopReason.FAILED

    @pytest.mark.asyncio
    async def test_planning_failure_stops_run(self):
        loop, run, sink, _, exec_llm = _make_loop(plan_reply=BackendFatalError("401"))
        await loop.run()
        assert _shape(sink.messages) == [(MessageKind.ERROR, None, None)]
        assert run.stop_reason == StopReason.FAILED
        assert exec_llm.call_count == 0

    @pytest.mark.asyncio
    async def test_stop_requested_after_failure_skips_retry(self, wait_until):
        gate = asyncio.Event()
        loop, run, sink, _, exec_llm = _make_loop(
            exec_replies=[BackendTransientError("429")], gate=gate
        )
        task = asyncio.ensure_future(loop.run())
        await wait_until(lambda: exec_llm.call_count == 1)
        run.request_stop()
        gate.set()
        await task
        assert exec_llm.call_count == 1
        assert run.stop_reason == StopReason.STOPPED
        assert sink.messages[-1].value == RUN_STOPPED
        assert sink.messages[-2].task_status == TaskStatus.COMPLETED


# ================================================================== #
# Pause / step / stop                                                  #
# ================================================================== #


class TestControls:

    @pytest.mark.asyncio
    async def test_pause_and_step(self, wait_until):
        loop, run, sink, _, exec_llm = _make_loop(mode=RunMode.PAUSE)
        task = asyncio.ensure_future(loop.run())

        await wait_until(lambda: run.status == RunStatus.PAUSED)
        assert exec_llm.call_count == 0
        assert _shape(sink.messages) == [(MessageKind.GOAL, None, None)]

        run.request_step()
        run.request_step()
        await wait_until(lambda: len(run.completed) == 1 and run.status == RunStatus.PAUSED)
        for _ in range(20):
            await asyncio.sleep(0)
        assert exec_llm.call_count == 1

        run.set_mode(RunMode.AUTOMATIC)
        await task
        assert run.stop_reason == StopReason.COMPLETED
        assert sink.statuses == [
            RunStatus.RUNNING,
            RunStatus.PAUSED,
            RunStatus.RUNNING,
            RunStatus.PAUSED,
            RunStatus.RUNNING,
            RunStatus.STOPPED,
        ]

    @pytest.mark.asyncio
    async def test_stop_while_paused(self, wait_until):
        loop, run, sink, _, exec_llm = _make_loop(mode=RunMode.PAUSE)
        task = asyncio.ensure_future(loop.run())
        await wait_until(lambda: run.status == RunStatus.PAUSED)
        run.request_stop()
        await task
        assert exec_llm.call_count == 0
        assert run.stop_reason == StopReason.STOPPED
        assert sink.messages[-1].value == RUN_STOPPED

    @pytest.mark.asyncio
    async def test_sink_stops_from_paused_notification(self):
        run_ref = []

        def on_status(status):
            if status == RunStatus.PAUSED:
                run_ref[0].request_stop()

        loop, run, sink, _, exec_llm = _make_loop(
            mode=RunMode.PAUSE, sink=CallbackSink(on_status_change=on_status)
        )
        run_ref.append(run)
        await asyncio.wait_for(loop.run(), timeout=2)
        assert exec_llm.call_count == 0
        assert run.stop_reason == StopReason.STOPPED
        assert sink.messages[-1].value == RUN_STOPPED

    @pytest.mark.asyncio
    async def test_sink_steps_from_paused_notification(self):
        run_ref = []

        def on_status(status):
            if status == RunStatus.PAUSED:
                run_ref[0].request_step()

        loop, run, sink, _, exec_llm = _make_loop(
            mode=RunMode.PAUSE, sink=CallbackSink(on_status_change=on_status)
        )
        run_ref.append(run)
        await asyncio.wait_for(loop.run(), timeout=2)
        assert exec_llm.call_count == 3
        assert run.stop_reason == StopReason.COMPLETED
        assert sink.statuses.count(RunStatus.PAUSED) == 3

    @pytest.mark.asyncio
    async def test_stop_before_start(self):
        loop, run, sink, plan_llm, _ = _make_loop()
        run.request_stop()
        await loop.run()
        assert plan_llm.call_count == 0
        assert sink.statuses == [RunStatus.STOPPED]
        assert [m.value for m in sink.messages] == [RUN_STOPPED]

    @pytest.mark.asyncio
    async def test_stop_while_task_in_flight_finishes_task(self, wait_until):
        gate = asyncio.Event()
        loop, run, sink, _, exec_llm = _make_loop(gate=gate)
        task = asyncio.ensure_future(loop.run())
        await wait_until(lambda: exec_llm.call_count == 1)

        run.request_stop()
        gate.set()
        await task

        assert _shape(sink.messages) == [
            (MessageKind.GOAL, None, None),
            (MessageKind.TASK, 1, TaskStatus.EXECUTING),
            (MessageKind.TASK, 1, TaskStatus.COMPLETED),
            (MessageKind.SYSTEM, None, None),
        ]
        assert sink.messages[-1].value == RUN_STOPPED
        assert run.stop_reason == StopReason.STOPPED
        assert loop.pending == ["Send invites", "Order cake"]

    @pytest.mark.asyncio
    async def test_abandon_in_flight(self, wait_until):
        gate = asyncio.Event()
        loop, run, sink, _, exec_llm = _make_loop(gate=gate)
        task = asyncio.ensure_future(loop.run())
        await wait_until(lambda: exec_llm.call_count == 1)

        run.request_stop()
        assert loop.abandon_in_flight() is True
        await task

        assert _shape(sink.for_task(1)) == [
            (MessageKind.TASK, 1, TaskStatus.EXECUTING),
            (MessageKind.ERROR, 1, TaskStatus.COMPLETED),
        ]
        assert sink.messages[-1].value == RUN_STOPPED
        assert run.completed[0].error is not None
        assert run.status == RunStatus.STOPPED

    @pytest.mark.asyncio
    async def test_abandon_without_call_in_flight(self):
        loop, _, _, _, _ = _make_loop()
        assert loop.abandon_in_flight() is False

    @pytest.mark.asyncio
    async def test_host_cancellation(self, wait_until):
        gate = asyncio.Event()
        loop, run, sink, _, exec_llm = _make_loop(gate=gate)
        task = asyncio.ensure_future(loop.run())
        await wait_until(lambda: exec_llm.call_count == 1)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert run.status == RunStatus.STOPPED
        assert run.stop_reason == StopReason.STOPPED
        assert sink.messages[-1].value == "Run cancelled."
        assert sink.messages[-2].task_status == TaskStatus.COMPLETED


# ================================================================== #
# Queue growth                                                         #
# ================================================================== #


class TestQueueGrowth:

    @pytest.mark.asyncio
    async def test_follow_on_tasks_are_deduplicated(self):
        loop, run, _, _, _ = _make_loop(
            plan_reply='["A", "B"]',
            exec_replies=['did A\nNEW TASKS: ["B", "C", "A"]', "did B", "did C"],
        )
        await loop.run()
        assert [(t.id, t.description) for t in run.completed] == [(1, "A"), (2, "B"), (3, "C")]

    @pytest.mark.asyncio
    async def test_loop_limit(self):
        loop, run, sink, _, exec_llm = _make_loop(max_loops=2)
        await loop.run()
        assert exec_llm.call_count == 2
        assert run.stop_reason == StopReason.LOOP_LIMIT
        assert "limit" in sink.messages[-1].value
        assert loop.executed_count == 2

    @pytest.mark.asyncio
    async def test_replay_matches_run_record(self):
        loop, run, sink, _, _ = _make_loop(
            exec_replies=[BackendTransientError("429"), "Hall booked", "Sent"]
        )
        await loop.run()
        records = replay_messages(sink.messages)
        assert [(r.id, r.description, r.result) for r in records] == [
            (t.id, t.description, t.result) for t in run.completed
        ]
        assert records[0].attempts == 2
