"""
Custom exceptions for CalcDispatch.

All exceptions inherit from CalcDispatchError for consistent error handling.
"""

from __future__ import annotations

from typing import Any


class CalcDispatchError(Exception):
    """Base exception for all CalcDispatch errors."""

    def __init__(
        self,
        message: str,
        *,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | details={self.details}"
        return self.message


# Input errors
class MalformedInputError(CalcDispatchError):
    """Request payload could not be decoded into the expected shape."""

    def __init__(self, message: str = "Bad request", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


# Registry errors
class RegistryError(CalcDispatchError):
    """Base class for task registry errors."""

    pass


class NotFoundError(RegistryError):
    """The requested thing is absent. Not a server fault."""

    pass


class TaskNotFoundError(NotFoundError):
    """No task has the requested id."""

    def __init__(self, task_id: int | str, **kwargs: Any) -> None:
        super().__init__(f"Task not found: {task_id}", **kwargs)
        self.task_id = task_id


class QueueEmptyError(NotFoundError):
    """No pending task is available to claim."""

    def __init__(self, message: str = "No pending tasks", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class InvalidTransitionError(RegistryError):
    """Requested status change is not allowed from the task's current status."""

    def __init__(
        self,
        task_id: int,
        current: str,
        requested: str,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            f"Task {task_id} cannot move from '{current}' to '{requested}'",
            details={"task_id": task_id, "current": current, "requested": requested},
            **kwargs,
        )
        self.task_id = task_id
        self.current = current
        self.requested = requested


# Client errors
class DispatchClientError(CalcDispatchError):
    """Talking to a dispatch server failed."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.status_code = status_code
