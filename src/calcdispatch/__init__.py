"""
CalcDispatch: pull-based dispatch service for arithmetic expression tasks.

Clients submit expressions, workers poll for the oldest pending task,
evaluate it on their side and report the result back. The service
keeps every task in memory and guarantees that a task is handed to at
most one worker.
"""

from calcdispatch.compute import (
    OPERATIONS,
    Operation,
    Task,
    TaskRegistry,
    TaskStatus,
    get_registry,
)

__version__ = "0.1.0"
__all__ = [
    "__version__",
    "OPERATIONS",
    "Operation",
    "Task",
    "TaskRegistry",
    "TaskStatus",
    "get_registry",
]
