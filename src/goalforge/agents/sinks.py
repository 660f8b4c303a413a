"""
Event sinks - where a run's messages and status changes go.

The run loop pushes every message and status change to exactly one sink
and never waits on it: plain return values are ignored, awaitables are
scheduled on the running loop, and exceptions are logged.  Combine sinks
with ``MultiSink``.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import AsyncIterator, Callable
from typing import Any, List, Optional, Protocol, Set, runtime_checkable

from goalforge.agents.config.agent_config import RunStatus
from goalforge.agents.messages import Message, MessageKind

logger = logging.getLogger(__name__)

_background: Set[asyncio.Future] = set()


@runtime_checkable
class EventSink(Protocol):
    """Receiver of run progress. Must not block."""

    def on_message(self, message: Message) -> Any:
        ...

    def on_status_change(self, status: RunStatus) -> Any:
        ...


def dispatch(callback: Callable[[Any], Any], payload: Any, log: logging.Logger | None = None) -> None:
    """Fire-and-forget delivery of *payload* to a sink callback."""
    log = log or logger
    try:
        outcome = callback(payload)
    except Exception:
        log.exception("Event sink %r failed on %r", callback, payload)
        return
    if inspect.isawaitable(outcome):
        future = asyncio.ensure_future(outcome)
        _background.add(future)
        future.add_done_callback(_reap)


def _reap(future: asyncio.Future) -> None:
    _background.discard(future)
    if not future.cancelled() and future.exception() is not None:
        logger.error("Async event sink failed: %s", future.exception())


class NullSink:
    """Discards everything."""

    def on_message(self, message: Message) -> None:
        pass

    def on_status_change(self, status: RunStatus) -> None:
        pass


class RecordingSink:
    """Keeps every message and status change in memory."""

    def __init__(self) -> None:
        self.messages: List[Message] = []
        self.statuses: List[RunStatus] = []

    def on_message(self, message: Message) -> None:
        self.messages.append(message)

    def on_status_change(self, status: RunStatus) -> None:
        self.statuses.append(status)

    def of_kind(self, kind: MessageKind) -> List[Message]:
        return [m for m in self.messages if m.kind == kind]

    def for_task(self, task_id: int) -> List[Message]:
        return [m for m in self.messages if m.task_id == task_id]


class LoggingSink:
    """Writes messages and status changes to a logger."""

    def __init__(self, log: logging.Logger | None = None, level: int = logging.INFO) -> None:
        self._logger = log or logging.getLogger("goalforge.run")
        self._level = level

    def on_message(self, message: Message) -> None:
        level = logging.ERROR if message.kind == MessageKind.ERROR else self._level
        if message.task_id is not None:
            self._logger.log(
                level, "[%s #%d %s] %s", message.kind, message.task_id, message.task_status, message.value
            )
        else:
            self._logger.log(level, "[%s] %s", message.kind, message.value)

    def on_status_change(self, status: RunStatus) -> None:
        self._logger.log(self._level, "status -> %s", RunStatus(status).value)


class CallbackSink:
    """Adapts plain callables (sync or async) to the sink protocol.

    Example::

        sink = CallbackSink(on_message=messages.append, on_status_change=print)
    """

    def __init__(
        self,
        on_message: Optional[Callable[[Message], Any]] = None,
        on_status_change: Optional[Callable[[RunStatus], Any]] = None,
    ) -> None:
        self._on_message = on_message
        self._on_status_change = on_status_change

    def on_message(self, message: Message) -> Any:
        if self._on_message is not None:
            return self._on_message(message)
        return None

    def on_status_change(self, status: RunStatus) -> Any:
        if self._on_status_change is not None:
            return self._on_status_change(status)
        return None


class MultiSink:
    """Fans out to several sinks, in order."""

    def __init__(self, *sinks: EventSink) -> None:
        self.sinks = [s for s in sinks if s is not None]

    def on_message(self, message: Message) -> None:
        for sink in self.sinks:
            dispatch(sink.on_message, message)

    def on_status_change(self, status: RunStatus) -> None:
        for sink in self.sinks:
            dispatch(sink.on_status_change, status)


class StreamingSink:
    """Buffers messages in an ``asyncio.Queue`` for ``async for`` consumption.

    Iteration ends after the run reports ``STOPPED``.
    """

    _DONE = object()

    def __init__(self) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()

    def on_message(self, message: Message) -> None:
        self._queue.put_nowait(message)

    def on_status_change(self, status: RunStatus) -> None:
        if status == RunStatus.STOPPED:
            self._queue.put_nowait(self._DONE)

    async def __aiter__(self) -> AsyncIterator[Message]:
        while True:
            item = await self._queue.get()
            if item is self._DONE:
                return
            yield item
