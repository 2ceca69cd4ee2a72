"""
Authentication API routes.

This module provides REST endpoints for:
- User registration and login
- Token refresh with rotation
- Logout from one device or all devices
- Password change, forgot-password and reset-password
- Google sign-in

Tokens are returned in the body and also set as http-only cookies.
"""

import logging

from fastapi import APIRouter, Depends, Request, Response, status

from api.dependencies import AppSettings, AuthServiceDep, CurrentUser, get_identity_verifier
from core.cookies import REFRESH_TOKEN_COOKIE, clear_auth_cookies, set_auth_cookies
from core.exceptions import MissingRefreshTokenError
from core.rate_limit import (
    LOGIN_LIMIT,
    PASSWORD_RESET_LIMIT,
    REGISTER_LIMIT,
    TOKEN_REFRESH_LIMIT,
    limiter,
)
from schemas.auth import (
    AccessTokenData,
    AuthData,
    ChangePasswordRequest,
    ForgotPasswordRequest,
    GoogleAuthRequest,
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
    ResetPasswordRequest,
)
from schemas.common import ApiResponse
from schemas.user import UserResponse
from services.auth_service import AuthResult, ForgotPasswordOutcome
from services.google import IdentityVerifier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

FORGOT_PASSWORD_MESSAGE = (
    "If an account exists for this email, a password reset link has been sent."
)


def _auth_response(
    result: AuthResult, response: Response, settings, message: str
) -> ApiResponse[AuthData]:
    set_auth_cookies(response, result.access_token, result.refresh_token, settings)
    return ApiResponse(
        message=message,
        data=AuthData(
            user=UserResponse.model_validate(result.user),
            access_token=result.access_token,
        ),
    )


def _body_or_cookie_token(
    request: Request, body: RefreshTokenRequest | None
) -> str | None:
    if body is not None and body.refresh_token:
        return body.refresh_token
    return request.cookies.get(REFRESH_TOKEN_COOKIE)


@router.post(
    "/register",
    response_model=ApiResponse[AuthData],
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
    description="""
    Register a new account with email and password.

    **Password Requirements:**
    - 8 to 100 characters
    - At least 1 uppercase letter
    - At least 1 lowercase letter
    - At least 1 digit
    - At least 1 special character

    **Rate Limit:** Configurable via RATE_LIMIT_REGISTER

    Returns the created user and an access token; both tokens are also set
    as cookies.
    """,
)
@limiter.limit(REGISTER_LIMIT)
async def register(
    payload: RegisterRequest,
    request: Request,
    response: Response,
    auth_service: AuthServiceDep,
    settings: AppSettings,
) -> ApiResponse[AuthData]:
    """
    Register a new user.

    Raises:
        409: Email already registered
        400: Body fails validation or password policy
    """
    result = await auth_service.register(
        email=payload.email, password=payload.password, name=payload.name
    )
    return _auth_response(result, response, settings, "Registration successful")


@router.post(
    "/login",
    response_model=ApiResponse[AuthData],
    summary="Login with email and password",
    description="""
    Authenticate with email and password.

    Repeated failures lock the account (423) for LOCK_TIME_MINUTES.

    **Rate Limit:** Configurable via RATE_LIMIT_LOGIN
    """,
)
@limiter.limit(LOGIN_LIMIT)
async def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    auth_service: AuthServiceDep,
    settings: AppSettings,
) -> ApiResponse[AuthData]:
    """
    Login with email and password.

    Raises:
        401: Invalid email or password
        423: Account locked
        400: Account has no password (Google sign-in)
    """
    result = await auth_service.login(email=payload.email, password=payload.password)
    return _auth_response(result, response, settings, "Login successful")


@router.post(
    "/refresh-token",
    response_model=ApiResponse[AccessTokenData],
    summary="Refresh access token",
    description="""
    Exchange a refresh token for a new token pair.

    The refresh token is read from the body first, then from the
    refresh_token cookie. The presented token is rotated; presenting a
    rotated token again signs the user out everywhere.

    **Rate Limit:** Configurable via RATE_LIMIT_TOKEN_REFRESH
    """,
)
@limiter.limit(TOKEN_REFRESH_LIMIT)
async def refresh_token(
    request: Request,
    response: Response,
    auth_service: AuthServiceDep,
    settings: AppSettings,
    payload: RefreshTokenRequest | None = None,
) -> ApiResponse[AccessTokenData]:
    """
    Refresh the token pair.

    Raises:
        401: No refresh token, token invalid/expired, or token reuse
    """
    token = _body_or_cookie_token(request, payload)
    if not token:
        raise MissingRefreshTokenError()

    pair = await auth_service.refresh(token)
    set_auth_cookies(response, pair.access_token, pair.refresh_token, settings)
    return ApiResponse(
        message="Token refreshed successfully",
        data=AccessTokenData(access_token=pair.access_token),
    )


@router.get(
    "/me",
    response_model=ApiResponse[UserResponse],
    summary="Get current user",
)
async def me(current_user: CurrentUser) -> ApiResponse[UserResponse]:
    """Return the authenticated user."""
    return ApiResponse(
        message="User retrieved successfully",
        data=UserResponse.model_validate(current_user),
    )


@router.post(
    "/logout",
    response_model=ApiResponse[None],
    summary="Logout",
    description="""
    Revoke the given refresh token (body, then cookie) and clear the auth
    cookies. Without any refresh token every session of the user is revoked.
    """,
)
async def logout(
    request: Request,
    response: Response,
    current_user: CurrentUser,
    auth_service: AuthServiceDep,
    settings: AppSettings,
    payload: RefreshTokenRequest | None = None,
) -> ApiResponse[None]:
    token = _body_or_cookie_token(request, payload)
    await auth_service.logout(current_user.id, token)
    clear_auth_cookies(response, settings)
    return ApiResponse(message="Logged out successfully")


@router.post(
    "/logout-all",
    response_model=ApiResponse[None],
    summary="Logout from all devices",
)
async def logout_all(
    response: Response,
    current_user: CurrentUser,
    auth_service: AuthServiceDep,
    settings: AppSettings,
) -> ApiResponse[None]:
    """Revoke every refresh token of the user."""
    await auth_service.logout_all_devices(current_user.id)
    clear_auth_cookies(response, settings)
    return ApiResponse(message="Logged out from all devices successfully")


@router.post(
    "/change-password",
    response_model=ApiResponse[None],
    summary="Change password",
    description="""
    Change the password of the authenticated user.

    Every session is revoked and access tokens issued before the change
    stop working.
    """,
)
async def change_password(
    payload: ChangePasswordRequest,
    response: Response,
    current_user: CurrentUser,
    auth_service: AuthServiceDep,
    settings: AppSettings,
) -> ApiResponse[None]:
    """
    Change password.

    Raises:
        401: Current password is incorrect
        400: Account has no password, or new password fails the policy
    """
    await auth_service.change_password(
        current_user.id, payload.current_password, payload.new_password
    )
    clear_auth_cookies(response, settings)
    return ApiResponse(message="Password changed successfully. Please login again.")


@router.post(
    "/forgot-password",
    response_model=ApiResponse[None],
    summary="Request a password reset",
    description="""
    Issue a single-use reset token for the account.

    The response is the same whether or not the email is registered.

    **Rate Limit:** Configurable via RATE_LIMIT_PASSWORD_RESET
    """,
)
@limiter.limit(PASSWORD_RESET_LIMIT)
async def forgot_password(
    payload: ForgotPasswordRequest,
    request: Request,
    auth_service: AuthServiceDep,
) -> ApiResponse[None]:
    result = await auth_service.forgot_password(payload.email)
    if result.outcome is ForgotPasswordOutcome.UNKNOWN_EMAIL:
        logger.debug("Forgot-password for unknown email answered generically")
    return ApiResponse(message=FORGOT_PASSWORD_MESSAGE)


@router.post(
    "/reset-password",
    response_model=ApiResponse[None],
    summary="Reset password with a reset token",
    description="""
    Set a new password using the token from forgot-password. The token is
    single-use and every session is revoked.

    **Rate Limit:** Configurable via RATE_LIMIT_PASSWORD_RESET
    """,
)
@limiter.limit(PASSWORD_RESET_LIMIT)
async def reset_password(
    payload: ResetPasswordRequest,
    request: Request,
    response: Response,
    auth_service: AuthServiceDep,
    settings: AppSettings,
) -> ApiResponse[None]:
    """
    Reset password.

    Raises:
        400: Token invalid or expired, or new password fails the policy
    """
    await auth_service.reset_password(payload.token, payload.new_password)
    clear_auth_cookies(response, settings)
    return ApiResponse(
        message="Password reset successful. Please login with your new password."
    )


@router.post(
    "/google",
    response_model=ApiResponse[AuthData],
    summary="Sign in with Google",
    description="""
    Sign in (or sign up) with a Google ID token obtained by the client.

    An email already registered with a password is refused (409).

    **Rate Limit:** Configurable via RATE_LIMIT_LOGIN
    """,
)
@limiter.limit(LOGIN_LIMIT)
async def google_auth(
    payload: GoogleAuthRequest,
    request: Request,
    response: Response,
    auth_service: AuthServiceDep,
    settings: AppSettings,
    verifier: IdentityVerifier = Depends(get_identity_verifier),
) -> ApiResponse[AuthData]:
    """
    Google sign-in.

    Raises:
        401: Google rejected the ID token
        409: Email registered with another provider
        503: Google sign-in not configured
    """
    profile = await verifier.verify(payload.id_token)
    result = await auth_service.google_auth(profile)
    return _auth_response(result, response, settings, "Google sign-in successful")
