"""
Task dispatch endpoints.

Clients submit expressions and poll their status; workers claim the
next pending task and post the finished record back.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Body, Depends, Query, Request, Response, status
from pydantic import BaseModel, Field, ValidationError

from calcdispatch.compute.registry import TaskRegistry
from calcdispatch.compute.tasks import Operation, Task, TaskStatus
from calcdispatch.core.config import CalcDispatchConfig
from calcdispatch.core.exceptions import MalformedInputError, TaskNotFoundError
from calcdispatch.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


class TaskRequest(BaseModel):
    """Request to create a task."""

    expression: str = Field(default="", description="Expression to evaluate")


class TaskResponse(BaseModel):
    """Id assigned to a new task."""

    id: int


class TaskReport(BaseModel):
    """Full task record posted back by a worker."""

    id: int
    expression: str
    status: TaskStatus
    result: float | None = None
    start_time: datetime | None = None

    def to_task(self) -> Task:
        return Task(**self.model_dump())


class ResultReport(BaseModel):
    """Result of a claimed task. Other posted fields are ignored."""

    id: int
    result: float


def get_task_registry(request: Request) -> TaskRegistry:
    return request.app.state.registry


def get_app_config(request: Request) -> CalcDispatchConfig:
    return request.app.state.config


def _parse_report(model: type[BaseModel], payload: dict[str, Any]) -> Any:
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise MalformedInputError(
            "Bad request",
            details={"fields": [".".join(map(str, err["loc"])) for err in e.errors()]},
            cause=e,
        ) from e


@router.post("/addTask")
async def add_task(
    payload: TaskRequest,
    registry: TaskRegistry = Depends(get_task_registry),
) -> TaskResponse:
    """Submit an expression for evaluation."""
    return TaskResponse(id=registry.create(payload.expression))


@router.get("/getTaskStatus", response_model=Task, response_model_exclude_none=True)
async def get_task_status(
    task_id: str | None = Query(default=None, alias="id"),
    registry: TaskRegistry = Depends(get_task_registry),
) -> Task:
    """
    Get the current record of a task.

    The id must be written exactly as the server writes it: "01",
    "+1" or " 1" match no task.
    """
    try:
        parsed_id = int(task_id)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise TaskNotFoundError(task_id or "")
    if str(parsed_id) != task_id:
        raise TaskNotFoundError(task_id)
    return registry.get_status(parsed_id)


@router.get("/getOperations")
async def get_operations(
    registry: TaskRegistry = Depends(get_task_registry),
) -> list[Operation]:
    """List supported operators and their simulated cost."""
    return registry.list_operations()


@router.get(
    "/getTaskForExecution", response_model=Task, response_model_exclude_none=True
)
async def get_task_for_execution(
    registry: TaskRegistry = Depends(get_task_registry),
) -> Task:
    """Claim the oldest pending task. 404 when nothing is pending."""
    return registry.claim_next()


@router.post("/handleResult", status_code=status.HTTP_204_NO_CONTENT)
async def handle_result(
    payload: dict[str, Any] = Body(...),
    registry: TaskRegistry = Depends(get_task_registry),
    config: CalcDispatchConfig = Depends(get_app_config),
) -> Response:
    """
    Accept a finished task from a worker.

    In "overwrite" mode the posted record must be complete (id,
    expression and status) and replaces the stored one. In "strict"
    mode only id and result are read, and only a task that is in
    progress can be completed.
    """
    if config.registry.report_mode == "strict":
        report = _parse_report(ResultReport, payload)
        registry.complete(report.id, report.result)
    else:
        report = _parse_report(TaskReport, payload)
        registry.report_result(report.to_task())

    return Response(status_code=status.HTTP_204_NO_CONTENT)
