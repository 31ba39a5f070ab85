"""
Task and operation types.

A task is one arithmetic expression submitted by a client and
evaluated by an external worker. The service only tracks its
lifecycle: pending -> in_progress -> completed.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class TaskStatus(str, Enum):
    """Lifecycle status of a task."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

    @property
    def rank(self) -> int:
        """Position in the lifecycle; statuses only move to a higher rank."""
        return _STATUS_ORDER.index(self)


_STATUS_ORDER = (TaskStatus.PENDING, TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED)


class Task(BaseModel):
    """
    A unit of work.

    `result` is only meaningful once the task is completed, and
    `start_time` is set when a worker claims the task.
    """

    id: int
    expression: str = ""
    status: TaskStatus = TaskStatus.PENDING
    result: float | None = None
    start_time: datetime | None = None


class Operation(BaseModel):
    """A supported operator and its simulated execution cost."""

    model_config = ConfigDict(frozen=True)

    operator: str
    duration: int = Field(..., description="Simulated cost in seconds")


# Informational only: the claim order never looks at these costs.
OPERATIONS: tuple[Operation, ...] = (
    Operation(operator="+", duration=2),
    Operation(operator="-", duration=2),
    Operation(operator="*", duration=4),
    Operation(operator="/", duration=4),
)
