"""Health check endpoints."""

from learntrack.health.router import router


__all__ = ["router"]
