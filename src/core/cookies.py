"""
Auth cookie emission.

Both token classes travel as http-only cookies next to the JSON body.
Clearing uses the same attributes as setting, otherwise browsers keep the
original cookie.
"""

from fastapi import Response

from core.config import Settings

ACCESS_TOKEN_COOKIE = "access_token"
REFRESH_TOKEN_COOKIE = "refresh_token"
COOKIE_PATH = "/"


def set_auth_cookies(
    response: Response,
    access_token: str,
    refresh_token: str,
    settings: Settings,
) -> None:
    """
    Attach both auth cookies to a response.

    Args:
        response: Outgoing response
        access_token: Encoded access token
        refresh_token: Encoded refresh token
        settings: Application settings (lifetimes, secure/sameSite policy)
    """
    response.set_cookie(
        key=ACCESS_TOKEN_COOKIE,
        value=access_token,
        max_age=settings.access_token_expire_minutes * 60,
        path=COOKIE_PATH,
        httponly=True,
        secure=settings.cookie_secure_flag,
        samesite=settings.cookie_samesite_policy,
    )
    response.set_cookie(
        key=REFRESH_TOKEN_COOKIE,
        value=refresh_token,
        max_age=settings.refresh_token_expire_days * 24 * 60 * 60,
        path=COOKIE_PATH,
        httponly=True,
        secure=settings.cookie_secure_flag,
        samesite=settings.cookie_samesite_policy,
    )


def clear_auth_cookies(response: Response, settings: Settings) -> None:
    """Expire both auth cookies."""
    for key in (ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE):
        response.delete_cookie(
            key=key,
            path=COOKIE_PATH,
            httponly=True,
            secure=settings.cookie_secure_flag,
            samesite=settings.cookie_samesite_policy,
        )
