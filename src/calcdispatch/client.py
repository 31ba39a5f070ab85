"""
HTTP client for a CalcDispatch server.

Used by submitters to create tasks and poll them, and by workers to
claim tasks and report results. A 404 from the status and claim
endpoints is a normal "absent" answer and comes back as None.
"""

from __future__ import annotations

from typing import Any

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from calcdispatch.compute.tasks import Operation, Task
from calcdispatch.core.config import ClientConfig, get_config
from calcdispatch.core.exceptions import DispatchClientError
from calcdispatch.core.logging import get_logger

logger = get_logger(__name__)

TRANSIENT_ERRORS = (httpx.TimeoutException, httpx.ConnectError)


class DispatchClient:
    """Synchronous client for the task dispatch endpoints."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        config: ClientConfig | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            base_url: Server URL (overrides config)
            config: Client settings (global configuration by default)
            http_client: Pre-built httpx client, e.g. a test client
        """
        config = config or get_config().client
        self._max_retries = max(1, config.max_retries)
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(
            base_url=base_url or config.base_url,
            timeout=config.timeout,
        )

    def __enter__(self) -> DispatchClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    def submit(self, expression: str) -> int:
        """Create a task and return its id."""
        response = self._request("POST", "/addTask", json={"expression": expression})
        return int(response.json()["id"])

    def status(self, task_id: int) -> Task | None:
        """Get a task's record, or None if the server has no such task."""
        response = self._request(
            "GET", "/getTaskStatus", params={"id": str(task_id)}, allow_missing=True
        )
        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        return Task.model_validate(response.json())

    def claim(self) -> Task | None:
        """Claim the next pending task, or None if the queue is empty."""
        response = self._request("GET", "/getTaskForExecution", allow_missing=True)
        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        return Task.model_validate(response.json())

    def report(self, task: Task) -> None:
        """Send a finished task back to the server."""
        self._request(
            "POST", "/handleResult", json=task.model_dump(mode="json", exclude_none=True)
        )

    def operations(self) -> list[Operation]:
        """Get the server's operator catalog."""
        response = self._request("GET", "/getOperations")
        return [Operation.model_validate(item) for item in response.json()]

    def _request(
        self,
        method: str,
        path: str,
        *,
        allow_missing: bool = False,
        **kwargs: Any,
    ) -> httpx.Response:
        sender = retry(
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            stop=stop_after_attempt(self._max_retries),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
            reraise=True,
        )(self._http.request)

        try:
            response = sender(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("dispatch_request_failed", method=method, path=path, error=str(e))
            raise DispatchClientError(
                f"{method} {path} failed: {e}", cause=e
            ) from e

        if allow_missing and response.status_code == httpx.codes.NOT_FOUND:
            return response
        if response.is_error:
            raise DispatchClientError(
                f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
                details={"body": response.text[:500]},
            )
        return response
