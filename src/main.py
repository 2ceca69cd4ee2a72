"""
FastAPI application entry point.

This module sets up:
- FastAPI application with middleware
- Exception handlers
- Rate limiting
- API routes
- CORS configuration
"""

import logging

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import auth, health, root, users
from core.config import Settings, get_settings
from core.handlers import register_exception_handlers
from core.lifespan import lifespan
from core.logging import setup_logging
from core.middleware import (
    RequestIDMiddleware,
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
)
from core.rate_limit import limiter
from services.google import GoogleIdentityVerifier
from services.password_reset import LoggingResetTokenSink

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Application settings (defaults to the environment)

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()
    setup_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        version=settings.version,
        description=settings.description,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    # ========================================================================
    # Application state
    # ========================================================================
    app.state.settings = settings
    app.state.limiter = limiter
    app.state.reset_token_sink = LoggingResetTokenSink(settings.client_url)
    app.state.identity_verifier = GoogleIdentityVerifier(settings)

    # ========================================================================
    # Exception Handlers
    # ========================================================================
    register_exception_handlers(app)

    # ========================================================================
    # Middleware Setup (last added runs first)
    # ========================================================================
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        SecurityHeadersMiddleware,
        enable_hsts=settings.is_production,
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ========================================================================
    # API Routes
    # ========================================================================
    v1_router = APIRouter(prefix="/v1")
    v1_router.include_router(users.router)

    api_router = APIRouter(prefix="/api")
    api_router.include_router(auth.router)
    api_router.include_router(v1_router)

    app.include_router(root.router)
    app.include_router(health.router)
    app.include_router(api_router)

    logger.debug(f"Application created for environment {settings.environment}")
    return app


app = create_app()
