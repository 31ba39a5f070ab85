"""
FastAPI application factory.

Creates the CalcDispatch API server with:
- Task submission, status, claim and report endpoints
- Operator catalog endpoint
- Health, info and landing page endpoints
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import calcdispatch
from calcdispatch.api.routes import health, tasks
from calcdispatch.compute.registry import TaskRegistry, get_registry
from calcdispatch.core.config import CalcDispatchConfig, get_config
from calcdispatch.core.exceptions import (
    CalcDispatchError,
    InvalidTransitionError,
    MalformedInputError,
    NotFoundError,
)
from calcdispatch.core.logging import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)

logger = get_logger(__name__)

# Most specific first
ERROR_STATUS_CODES: list[tuple[type[CalcDispatchError], int]] = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (MalformedInputError, status.HTTP_400_BAD_REQUEST),
    (InvalidTransitionError, status.HTTP_409_CONFLICT),
]


def _status_code_for(exc: CalcDispatchError) -> int:
    for exc_type, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, exc_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _error_body(error_type: str, message: str, details: dict | None = None) -> dict:
    error: dict = {"type": error_type, "message": message}
    if details is not None:
        error["details"] = details
    return {"error": error}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager."""
    # Startup
    config: CalcDispatchConfig = app.state.config
    configure_logging(config.logging)
    logger.info(
        "server_starting",
        env=config.env,
        debug=config.debug,
        report_mode=config.registry.report_mode,
    )
    yield
    # Shutdown
    logger.info("server_stopping", tasks=app.state.registry.stats())


def create_app(
    config: CalcDispatchConfig | None = None,
    registry: TaskRegistry | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Settings to use (global configuration by default)
        registry: Task registry to serve (global registry by default)

    Returns:
        Configured FastAPI instance
    """
    config = config or get_config()

    app = FastAPI(
        title="CalcDispatch",
        description="Pull-based dispatch service for arithmetic expression tasks",
        version=calcdispatch.__version__,
        docs_url="/docs" if config.debug else None,
        redoc_url="/redoc" if config.debug else None,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.registry = registry if registry is not None else get_registry()

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_context(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        clear_context()
        bind_context(method=request.method, path=request.url.path)
        return await call_next(request)

    # Exception handlers
    @app.exception_handler(CalcDispatchError)
    async def calcdispatch_error_handler(
        request: Request, exc: CalcDispatchError
    ) -> JSONResponse:
        status_code = _status_code_for(exc)
        if status_code >= 500:
            logger.error(
                "api_error",
                error_type=type(exc).__name__,
                message=exc.message,
                details=exc.details,
            )
        else:
            logger.debug(
                "api_client_error",
                error_type=type(exc).__name__,
                message=exc.message,
                status_code=status_code,
            )
        return JSONResponse(
            status_code=status_code,
            content=_error_body(type(exc).__name__, exc.message, exc.details),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        logger.debug("api_bad_request", errors=len(exc.errors()))
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_error_body(MalformedInputError.__name__, "Bad request"),
        )

    @app.exception_handler(Exception)
    async def generic_error_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.exception("unhandled_error", error=str(exc))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body("InternalError", "An unexpected error occurred"),
        )

    # Include routers
    app.include_router(health.router, tags=["Health"])
    app.include_router(tasks.router, tags=["Tasks"])

    return app


# For running with uvicorn directly
app = create_app()
