"""
FastAPI dependencies for authentication and authorization.

This module provides:
- Settings, database session and service factories
- Current user extraction from the access token (header, then cookie)
- Role-based access control
"""

import logging
from typing import Annotated, Callable

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings
from core.cookies import ACCESS_TOKEN_COOKIE
from core.database import get_db
from core.exceptions import InsufficientPermissionsError, NoTokenError
from core.tokens import extract_bearer_token
from models.enums import UserRole
from models.user import User
from services.auth_service import AuthService
from services.google import IdentityVerifier
from services.password_reset import ResetTokenSink
from services.user_service import UserService

logger = logging.getLogger(__name__)


# =============================================================================
# Application collaborators
# =============================================================================


def get_app_settings(request: Request) -> Settings:
    """Settings the application was built with."""
    return request.app.state.settings


def get_reset_token_sink(request: Request) -> ResetTokenSink:
    return request.app.state.reset_token_sink


def get_identity_verifier(request: Request) -> IdentityVerifier:
    return request.app.state.identity_verifier


AppSettings = Annotated[Settings, Depends(get_app_settings)]
DbSession = Annotated[AsyncSession, Depends(get_db)]


# =============================================================================
# Services
# =============================================================================


def get_auth_service(
    db: DbSession,
    settings: AppSettings,
    reset_sink: ResetTokenSink = Depends(get_reset_token_sink),
) -> AuthService:
    """
    Build the AuthService for this request.

    FastAPI caches dependencies per request, so the route and
    get_current_user share one service and one session.
    """
    return AuthService(db, settings, reset_sink=reset_sink)


def get_user_service(db: DbSession) -> UserService:
    return UserService(db)


# =============================================================================
# Authentication
# =============================================================================


async def get_current_user(
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
) -> User:
    """
    Dependency to resolve the authenticated user.

    The access token is read from ``Authorization: Bearer <token>`` first,
    then from the access_token cookie.

    Returns:
        Active User instance

    Raises:
        NoTokenError: No token in header or cookie
        TokenExpiredError / InvalidTokenError / TokenVerificationFailedError
        UserNotFoundError (401): Token refers to a deleted user
        AccountInactiveError: User status is not ACTIVE
        PasswordChangedError: Token predates the last password change

    Usage:
        @router.get("/me")
        async def me(current_user: CurrentUser):
            return current_user
    """
    token = extract_bearer_token(request.headers.get("Authorization"))
    if not token:
        token = request.cookies.get(ACCESS_TOKEN_COOKIE)
    if not token:
        logger.debug(f"No access token on {request.method} {request.url.path}")
        raise NoTokenError()

    user = await auth_service.authenticate(token)
    request.state.user_id = user.id
    return user


def require_roles(*roles: UserRole) -> Callable:
    """
    Dependency factory restricting a route to the given roles.

    Usage:
        @router.get("/", dependencies=[Depends(require_roles(UserRole.ADMIN))])
    """
    allowed = frozenset(roles)

    async def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            logger.warning(
                f"User {current_user.id} ({current_user.role.value}) denied; "
                f"requires one of {sorted(r.value for r in allowed)}"
            )
            raise InsufficientPermissionsError()
        return current_user

    return role_checker


# Type aliases for dependency injection
CurrentUser = Annotated[User, Depends(get_current_user)]
AdminUser = Annotated[
    User, Depends(require_roles(UserRole.ADMIN, UserRole.SUPER_ADMIN))
]
SuperAdminUser = Annotated[User, Depends(require_roles(UserRole.SUPER_ADMIN))]
AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
UserServiceDep = Annotated[UserService, Depends(get_user_service)]
