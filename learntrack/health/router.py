"""Liveness and readiness probes.

``/health/ready`` answers 200 even when degraded so that an orchestrator
can tell "process is up, dependencies are not" apart from a crash.
"""

from typing import Any

from fastapi import APIRouter, Request

from learntrack.config import Settings
from learntrack.core.redis import get_redis


router = APIRouter(prefix="/health", tags=["health"])


def _settings(request: Request) -> Settings:
    return request.app.state.settings


@router.get("/live")
async def liveness() -> dict[str, str]:
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request) -> dict[str, Any]:
    database = bool(getattr(request.app.state, "database_ready", False))
    return {
        "status": "ready" if database else "degraded",
        "database": database,
        "cache": get_redis() is not None,
        "environment": _settings(request).environment,
    }


@router.get("")
async def health(request: Request) -> dict[str, str]:
    settings = _settings(request)
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
