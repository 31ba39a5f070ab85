"""
In-memory task registry.

The registry owns every task record and hands out copies. All reads
and writes happen under one lock, held only for the duration of a
single operation and never across I/O (logging included).

Pending tasks are claimed in creation order. Ids are monotonic, so a
min-heap of pending ids gives creation order without scanning the
whole task set.
"""

from __future__ import annotations

import heapq
import math
import threading
from datetime import datetime, timezone
from typing import Callable, Iterable

from calcdispatch.compute.tasks import OPERATIONS, Operation, Task, TaskStatus
from calcdispatch.core.exceptions import (
    InvalidTransitionError,
    MalformedInputError,
    QueueEmptyError,
    TaskNotFoundError,
)
from calcdispatch.core.logging import get_logger

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TaskRegistry:
    """
    Shared store of tasks with a first-come-first-served claim protocol.

    Safe to use from any number of threads. Every operation is a short
    synchronous critical section; nothing blocks while the lock is held.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], datetime] | None = None,
        operations: Iterable[Operation] = OPERATIONS,
    ) -> None:
        """
        Initialize an empty registry.

        Args:
            clock: Source of claim timestamps (UTC now by default)
            operations: Operator catalog served by list_operations()
        """
        self._lock = threading.Lock()
        self._tasks: dict[int, Task] = {}
        self._pending: list[int] = []
        self._queued: set[int] = set()
        self._last_id = 0
        self._clock = clock or _utcnow
        self._operations = tuple(operations)

    def __len__(self) -> int:
        with self._lock:
            return len(self._tasks)

    def create(self, expression: str) -> int:
        """
        Register a new pending task.

        The expression is stored as-is. Ids start at 1 and are never reused.

        Returns:
            The new task's id
        """
        with self._lock:
            self._last_id += 1
            task_id = self._last_id
            self._tasks[task_id] = Task(id=task_id, expression=expression)
            self._enqueue(task_id)

        logger.info("task_created", task_id=task_id)
        return task_id

    def get_status(self, task_id: int) -> Task:
        """
        Get a snapshot of a task.

        Raises:
            TaskNotFoundError: No task has this id
        """
        with self._lock:
            task = self._tasks.get(task_id)
            snapshot = task.model_copy() if task is not None else None

        if snapshot is None:
            raise TaskNotFoundError(task_id)
        return snapshot

    def claim_next(self) -> Task:
        """
        Claim the oldest pending task.

        Selection and the pending -> in_progress transition happen under
        the same lock, so a task is handed to at most one caller.

        Returns:
            Copy of the claimed task with start_time set

        Raises:
            QueueEmptyError: Nothing is pending
        """
        with self._lock:
            task = self._pop_pending()
            if task is not None:
                task.status = TaskStatus.IN_PROGRESS
                task.start_time = self._clock()
                claimed = task.model_copy()

        if task is None:
            logger.debug("claim_queue_empty")
            raise QueueEmptyError()

        logger.info("task_claimed", task_id=claimed.id)
        return claimed

    def report_result(self, task: Task) -> bool:
        """
        Replace the stored record that has the same id.

        The overwrite is unconditional: status, result and start_time
        are taken from the caller. A task put back to pending becomes
        claimable again in its original position. Unknown ids are
        ignored.

        Returns:
            True if a record was replaced
        """
        with self._lock:
            previous = self._tasks.get(task.id)
            if previous is not None:
                self._tasks[task.id] = task.model_copy()
                if task.status is TaskStatus.PENDING:
                    self._enqueue(task.id)

        if previous is None:
            logger.warning("report_unknown_task", task_id=task.id)
            return False

        if task.status.rank < previous.status.rank:
            logger.warning(
                "task_status_regressed",
                task_id=task.id,
                previous=previous.status.value,
                status=task.status.value,
            )
        logger.info("task_reported", task_id=task.id, status=task.status.value)
        return True

    def complete(self, task_id: int, result: float) -> Task | None:
        """
        Record the result of a claimed task.

        Only an in_progress task can be completed. Unknown ids are
        ignored, as with report_result().

        Returns:
            Copy of the completed task, or None if the id is unknown

        Raises:
            MalformedInputError: result is not a finite number
            InvalidTransitionError: the task is not in_progress
        """
        if not math.isfinite(result):
            raise MalformedInputError(
                "Result must be a finite number",
                details={"task_id": task_id, "result": str(result)},
            )

        with self._lock:
            task = self._tasks.get(task_id)
            current = task.status if task is not None else None
            if current is TaskStatus.IN_PROGRESS:
                task.status = TaskStatus.COMPLETED
                task.result = result
                completed = task.model_copy()

        if current is None:
            logger.warning("report_unknown_task", task_id=task_id)
            return None
        if current is not TaskStatus.IN_PROGRESS:
            raise InvalidTransitionError(
                task_id, current.value, TaskStatus.COMPLETED.value
            )

        logger.info("task_completed", task_id=task_id)
        return completed

    def list_operations(self) -> list[Operation]:
        """Get the operator catalog in its fixed order."""
        return list(self._operations)

    def stats(self) -> dict[str, int]:
        """Count tasks per status."""
        counts = {status.value: 0 for status in TaskStatus}
        with self._lock:
            for task in self._tasks.values():
                counts[task.status.value] += 1
        return counts

    def pending_count(self) -> int:
        """Number of tasks waiting to be claimed."""
        return self.stats()[TaskStatus.PENDING.value]

    # Callers must hold self._lock for the helpers below.

    def _enqueue(self, task_id: int) -> None:
        if task_id not in self._queued:
            heapq.heappush(self._pending, task_id)
            self._queued.add(task_id)

    def _pop_pending(self) -> Task | None:
        while self._pending:
            task_id = heapq.heappop(self._pending)
            self._queued.discard(task_id)
            task = self._tasks[task_id]
            # Entries go stale when a report moves a queued task past pending.
            if task.status is TaskStatus.PENDING:
                return task
        return None


# Global registry instance
_registry = TaskRegistry()


def get_registry() -> TaskRegistry:
    """Get the global task registry."""
    return _registry
