"""Health, info and landing page endpoints."""

from pathlib import Path

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse

import calcdispatch

router = APIRouter()

INDEX_PAGE = Path(__file__).resolve().parent.parent / "static" / "index.html"


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
async def index() -> str:
    """Landing page with a form to submit and track expressions."""
    return INDEX_PAGE.read_text(encoding="utf-8")


@router.get("/health")
async def health_check() -> dict:
    """Basic health check endpoint."""
    return {"status": "healthy"}


@router.get("/info")
async def info(request: Request) -> dict:
    """Server information endpoint."""
    config = request.app.state.config
    return {
        "name": "CalcDispatch",
        "version": calcdispatch.__version__,
        "environment": config.env,
        "report_mode": config.registry.report_mode,
        "tasks": request.app.state.registry.stats(),
    }
