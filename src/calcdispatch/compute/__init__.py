"""Task records and the shared task registry."""

from calcdispatch.compute.registry import TaskRegistry, get_registry
from calcdispatch.compute.tasks import OPERATIONS, Operation, Task, TaskStatus

__all__ = [
    "OPERATIONS",
    "Operation",
    "Task",
    "TaskRegistry",
    "TaskStatus",
    "get_registry",
]
