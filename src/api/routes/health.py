"""
Health Check Endpoints
"""

import logging
from typing import Any

from fastapi import APIRouter, Request

from api.dependencies import AppSettings
from core.database import check_database_connection

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
async def health_check(settings: AppSettings) -> dict[str, str]:
    """
    Liveness check.

    Returns:
        Basic application information and status
    """
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": settings.version,
        "environment": settings.environment,
    }


@router.get("/ready")
async def readiness_check(request: Request, settings: AppSettings) -> dict[str, Any]:
    """
    Readiness check.

    Verifies that the database answers a round-trip query.

    Returns:
        Detailed readiness status
    """
    db_healthy = await check_database_connection(request.app.state.sessionmaker)
    if not db_healthy:
        logger.warning("Readiness check failed: database unreachable")

    return {
        "status": "ready" if db_healthy else "degraded",
        "app": settings.app_name,
        "version": settings.version,
        "checks": {
            "database": "ok" if db_healthy else "ko",
        },
    }
