"""Tasks and the first-in, first-out queues the multiplexer runs them from."""

from __future__ import annotations

from collections import deque
from typing import Callable, Iterator, Optional

__all__ = ["Task", "TaskQueue", "run_queue"]


class Task:
    """A unit of work a multiplexer runs once its event has occurred.

    ``complete`` is called with the task itself. It may be assigned after
    construction but must be set before :meth:`execute` is called.
    """

    __slots__ = ("complete",)

    def __init__(self, complete: Optional[Callable[["Task"], None]] = None) -> None:
        self.complete = complete

    def execute(self) -> None:
        """Run the completion function on this task."""
        if self.complete is None:
            raise RuntimeError("task has no completion function")
        self.complete(self)


class TaskQueue:
    """A first-in, first-out queue of tasks."""

    __slots__ = ("_tasks",)

    def __init__(self) -> None:
        self._tasks: deque[Task] = deque()

    def is_empty(self) -> bool:
        """Return True when the queue holds no tasks."""
        return not self._tasks

    def push(self, task: Task) -> None:
        """Add ``task`` to the back of the queue."""
        self._tasks.append(task)

    def move_back(self, other: "TaskQueue") -> None:
        """Move every task of ``other`` to the back of this queue, in order."""
        if other is self:
            return
        self._tasks.extend(other._tasks)
        other._tasks.clear()

    def pop(self) -> Task:
        """Remove and return the task at the front of the queue."""
        try:
            return self._tasks.popleft()
        except IndexError:
            raise IndexError("pop from an empty task queue") from None

    def __len__(self) -> int:
        return len(self._tasks)

    def __iter__(self) -> Iterator[Task]:
        return iter(self._tasks)

    def __repr__(self) -> str:
        return f"TaskQueue(<{len(self._tasks)} tasks>)"


def run_queue(queue: TaskQueue) -> None:
    """Execute tasks from the front of ``queue`` until it is empty.

    Tasks pushed while the queue runs are executed too.
    """
    while not queue.is_empty():
        queue.pop().execute()