"""
Service layer for business logic.

This package provides service classes that implement business logic,
coordinate between repositories, and handle transaction management.
"""

from services.auth_service import AuthService
from services.google import GoogleIdentityVerifier, GoogleProfile
from services.password_reset import LoggingResetTokenSink, PasswordResetIssuer
from services.session_store import SessionStore
from services.user_service import UserService

__all__ = [
    "AuthService",
    "GoogleIdentityVerifier",
    "GoogleProfile",
    "LoggingResetTokenSink",
    "PasswordResetIssuer",
    "SessionStore",
    "UserService",
]
