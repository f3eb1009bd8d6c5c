from __future__ import annotations

from fastapi import APIRouter, Request
from app.config import settings

router = APIRouter()


@router.get("/health")
def health(request: Request):
    """Health check endpoint with system status."""
    scheduler = getattr(request.app.state, "scheduler", None)
    return {
        "status": "ok",
        "environment": settings.environment,
        "simulation_running": bool(scheduler and scheduler.is_running),
        "version": "0.1.0"
    }
