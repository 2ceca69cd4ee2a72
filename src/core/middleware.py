"""
Custom middleware for FastAPI application.

This module provides:
- Request ID generation and tracking
- Security headers middleware
- Request/response logging
"""

import logging
import re
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from core.logging import request_id_ctx

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
# Incoming ids are echoed into logs and headers, so keep them boring
VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._\-]{1,128}$")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware to assign and track request IDs.

    This middleware:
    - Reuses a well-formed incoming X-Request-ID, otherwise generates a UUID4
    - Stores it in request.state.request_id and in the logging context
    - Adds X-Request-ID header to responses
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """
        Process request and add request ID.

        Args:
            request: FastAPI Request object
            call_next: Next middleware or endpoint handler

        Returns:
            Response with X-Request-ID header
        """
        incoming = request.headers.get(REQUEST_ID_HEADER)
        if incoming and VALID_REQUEST_ID.match(incoming):
            request_id = incoming
        else:
            request_id = str(uuid.uuid4())

        request.state.request_id = request_id
        token = request_id_ctx.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_ctx.reset(token)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add security headers to all responses.

    Security headers added:
    - X-Content-Type-Options: nosniff
    - X-Frame-Options: DENY
    - Referrer-Policy: strict-origin-when-cross-origin
    - Content-Security-Policy: API-only policy
    - Strict-Transport-Security: production only
    """

    def __init__(self, app: ASGIApp, enable_hsts: bool = False):
        """
        Initialize SecurityHeadersMiddleware.

        Args:
            app: ASGI application
            enable_hsts: Enable Strict-Transport-Security header (production only)
        """
        super().__init__(app)
        self.enable_hsts = enable_hsts

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = (
            "default-src 'none'; frame-ancestors 'none'"
        )

        if self.enable_hsts:
            # 1 year, all subdomains
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware to log all incoming requests and outgoing responses.

    Log level by status band:
    - INFO: 2xx, 3xx
    - WARNING: 4xx
    - ERROR: 5xx
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()

        method = request.method
        path = request.url.path
        client_host = request.client.host if request.client else "unknown"

        try:
            response = await call_next(request)
        except Exception as e:
            duration = time.perf_counter() - start_time
            logger.error(
                f"Request failed: {method} {path} - client={client_host} "
                f"duration={duration:.3f}s error={e}"
            )
            raise

        duration = time.perf_counter() - start_time
        status_code = response.status_code
        log_message = (
            f"{method} {path} {status_code} - client={client_host} "
            f"duration={duration:.3f}s"
        )

        if status_code < 400:
            logger.info(log_message)
        elif status_code < 500:
            logger.warning(log_message)
        else:
            logger.error(log_message)

        response.headers["X-Response-Time"] = f"{duration:.3f}s"
        return response
