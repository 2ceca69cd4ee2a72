"""
Root Endpoints
"""

from fastapi import APIRouter

from api.dependencies import AppSettings

router = APIRouter(tags=["Root"])


@router.get("/")
async def root(settings: AppSettings) -> dict[str, str]:
    """
    Root endpoint.

    Returns:
        Service name and where to find health and docs
    """
    return {
        "message": f"Welcome to {settings.app_name} API",
        "version": settings.version,
        "docs": "/docs" if settings.debug else "disabled",
        "health": "/health",
    }
