"""
TaskQueue - ordered pending tasks for one run.

FIFO: tasks are popped in the order they were enqueued.  The queue also
hands out task ids, so ids are a monotonic sequence across the whole run.
"""

from __future__ import annotations

from collections import deque
from typing import Iterable, List

from goalforge.agents.task import Task


class TaskQueue:
    """Pending tasks of a single run. Owned exclusively by its run loop."""

    def __init__(self) -> None:
        self._pending: deque[Task] = deque()
        self._next_id = 1

    def __len__(self) -> int:
        return len(self._pending)

    def __bool__(self) -> bool:
        return bool(self._pending)

    @property
    def descriptions(self) -> List[str]:
        return [task.description for task in self._pending]

    def enqueue(self, description: str) -> Task:
        task = Task(id=self._next_id, description=description)
        self._next_id += 1
        self._pending.append(task)
        return task

    def extend(self, descriptions: Iterable[str]) -> List[Task]:
        """Enqueue descriptions at the tail, in order. Returns the new tasks."""
        return [self.enqueue(d) for d in descriptions]

    def pop(self) -> Task:
        """Remove and return the oldest pending task.

        Raises:
            IndexError: if the queue is empty.
        """
        if not self._pending:
            raise IndexError("pop from an empty task queue")
        return self._pending.popleft()

    def __repr__(self) -> str:
        return f"TaskQueue(pending={len(self._pending)}, next_id={self._next_id})"
