"""Health check endpoint."""

from fastapi import APIRouter, Depends

from visitlog import __version__
from visitlog.config import Settings
from visitlog.dependencies import get_app_settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(settings: Settings = Depends(get_app_settings)) -> dict:
    """Return API health status, version and the active identity backend."""
    return {
        "status": "ok",
        "version": __version__,
        "identity_backend": settings.identity_backend,
    }
