"""Core CalcDispatch components."""

from calcdispatch.core.config import CalcDispatchConfig, configure, get_config
from calcdispatch.core.exceptions import (
    CalcDispatchError,
    InvalidTransitionError,
    MalformedInputError,
    NotFoundError,
    QueueEmptyError,
    TaskNotFoundError,
)

__all__ = [
    "CalcDispatchConfig",
    "CalcDispatchError",
    "InvalidTransitionError",
    "MalformedInputError",
    "NotFoundError",
    "QueueEmptyError",
    "TaskNotFoundError",
    "configure",
    "get_config",
]
