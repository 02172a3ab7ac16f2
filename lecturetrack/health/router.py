"""Health check endpoints."""

from fastapi import APIRouter, Request

from lecturetrack.config import Settings, get_settings


router = APIRouter(prefix="/health", tags=["health"])


def _settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - checks if the application is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request) -> dict[str, str | bool | int]:
    """Readiness probe - checks if the services are wired."""
    settings = _settings(request)
    state = request.app.state
    poller = getattr(state, "transcode_poller", None)
    ready = getattr(state, "progress_store", None) is not None and poller is not None
    return {
        "status": "ready" if ready else "starting",
        "environment": settings.environment,
        "debug": settings.debug,
        "store_backend": settings.store_backend,
        "active_transcode_jobs": len(poller.active_jobs) if poller else 0,
    }


@router.get("")
async def health(request: Request) -> dict[str, str]:
    """General health check endpoint."""
    settings = _settings(request)
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
