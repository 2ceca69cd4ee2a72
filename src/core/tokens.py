"""
JWT access and refresh token management.

This module provides:
- Token issuing for both token classes, each signed with its own secret
- Verification that maps every failure to a typed application error
- Pure helpers: bearer header parsing, expiring-soon check, expiry lookup
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, NamedTuple

from jose import ExpiredSignatureError, JWTError, jwt
from jose.exceptions import JWTClaimsError

from core.config import Settings
from core.exceptions import (
    AppException,
    InvalidRefreshTokenError,
    InvalidTokenError,
    RefreshTokenExpiredError,
    RefreshTokenVerificationFailedError,
    TokenExpiredError,
    TokenVerificationFailedError,
)

logger = logging.getLogger(__name__)


# =============================================================================
# JWT Token Management
# =============================================================================
# Access tokens: short-lived, used for API authentication
# Refresh tokens: long-lived, registered on the user and rotated on use
# =============================================================================

# JWT algorithm
ALGORITHM = "HS256"

# Token types
TOKEN_TYPE_ACCESS = "access"
TOKEN_TYPE_REFRESH = "refresh"

BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class TokenPayload:
    """Identity claims carried by both token classes."""

    user_id: str
    email: str
    role: str

    @classmethod
    def for_user(cls, user: Any) -> "TokenPayload":
        """Build the payload for a User row."""
        return cls(user_id=str(user.id), email=user.email, role=user.role.value)


@dataclass(frozen=True)
class DecodedToken:
    """A verified token: the identity claims plus issue/expiry instants."""

    user_id: str
    email: str
    role: str
    issued_at: int
    expires_at: int
    token_type: str
    jti: str | None = None


class TokenPair(NamedTuple):
    access_token: str
    refresh_token: str


class TokenService:
    """
    Signs and verifies access and refresh tokens.

    Each token class has its own secret and a ``type`` claim, so a token of
    one class never verifies as the other. Every token also gets a random
    ``jti`` which keeps two tokens minted in the same second distinct.
    """

    def __init__(self, settings: Settings):
        """
        Initialize TokenService.

        Args:
            settings: Application settings (secrets and lifetimes)
        """
        self._access_secret = settings.jwt_access_secret
        self._refresh_secret = settings.jwt_refresh_secret
        self._access_ttl = timedelta(minutes=settings.access_token_expire_minutes)
        self._refresh_ttl = timedelta(days=settings.refresh_token_expire_days)

    # -------------------------------------------------------------------------
    # Issuing
    # -------------------------------------------------------------------------

    def issue_access_token(
        self, payload: TokenPayload, now: datetime | None = None
    ) -> str:
        """
        Create a JWT access token.

        Args:
            payload: Identity claims
            now: Issue instant (defaults to the current time)

        Returns:
            Encoded JWT token string
        """
        return self._encode(
            payload, TOKEN_TYPE_ACCESS, self._access_secret, self._access_ttl, now
        )

    def issue_refresh_token(
        self, payload: TokenPayload, now: datetime | None = None
    ) -> str:
        """
        Create a JWT refresh token.

        Args:
            payload: Identity claims
            now: Issue instant (defaults to the current time)

        Returns:
            Encoded JWT token string
        """
        return self._encode(
            payload, TOKEN_TYPE_REFRESH, self._refresh_secret, self._refresh_ttl, now
        )

    def issue_token_pair(
        self, payload: TokenPayload, now: datetime | None = None
    ) -> TokenPair:
        """Create an access token and a refresh token for the same identity."""
        return TokenPair(
            access_token=self.issue_access_token(payload, now),
            refresh_token=self.issue_refresh_token(payload, now),
        )

    @staticmethod
    def _encode(
        payload: TokenPayload,
        token_type: str,
        secret: str,
        ttl: timedelta,
        now: datetime | None,
    ) -> str:
        issued = now or datetime.now(UTC)
        claims = {
            "userId": payload.user_id,
            "email": payload.email,
            "role": payload.role,
            "iat": int(issued.timestamp()),
            "exp": int((issued + ttl).timestamp()),
            "type": token_type,
            "jti": str(uuid.uuid4()),
        }
        return jwt.encode(claims, secret, algorithm=ALGORITHM)

    # -------------------------------------------------------------------------
    # Verification
    # -------------------------------------------------------------------------

    def verify_access_token(self, token: str) -> DecodedToken:
        """
        Decode and validate an access token.

        Raises:
            TokenExpiredError: Token is past its expiry
            InvalidTokenError: Bad signature, wrong class or malformed token
            TokenVerificationFailedError: Any other decode failure
        """
        return self._decode(
            token,
            self._access_secret,
            TOKEN_TYPE_ACCESS,
            expired=TokenExpiredError,
            invalid=InvalidTokenError,
            failed=TokenVerificationFailedError,
        )

    def verify_refresh_token(self, token: str) -> DecodedToken:
        """
        Decode and validate a refresh token.

        Raises:
            RefreshTokenExpiredError: Token is past its expiry
            InvalidRefreshTokenError: Bad signature, wrong class or malformed token
            RefreshTokenVerificationFailedError: Any other decode failure
        """
        return self._decode(
            token,
            self._refresh_secret,
            TOKEN_TYPE_REFRESH,
            expired=RefreshTokenExpiredError,
            invalid=InvalidRefreshTokenError,
            failed=RefreshTokenVerificationFailedError,
        )

    @staticmethod
    def _decode(
        token: str,
        secret: str,
        expected_type: str,
        *,
        expired: type[AppException],
        invalid: type[AppException],
        failed: type[AppException],
    ) -> DecodedToken:
        try:
            claims = jwt.decode(token, secret, algorithms=[ALGORITHM])
        except ExpiredSignatureError:
            raise expired()
        except JWTClaimsError as e:
            logger.warning(f"JWT claims rejected ({expected_type}): {e}")
            raise failed()
        except JWTError as e:
            logger.warning(f"JWT decode error ({expected_type}): {e}")
            raise invalid()
        except Exception as e:
            logger.warning(f"JWT verification failed ({expected_type}): {e}")
            raise failed()

        if claims.get("type") != expected_type:
            logger.warning(
                f"JWT type mismatch: expected {expected_type}, got {claims.get('type')}"
            )
            raise invalid()

        try:
            return DecodedToken(
                user_id=str(claims["userId"]),
                email=str(claims["email"]),
                role=str(claims["role"]),
                issued_at=int(claims["iat"]),
                expires_at=int(claims["exp"]),
                token_type=expected_type,
                jti=claims.get("jti"),
            )
        except (KeyError, TypeError, ValueError):
            raise failed()


# =============================================================================
# Pure helpers
# =============================================================================


def extract_bearer_token(header_value: str | None) -> str | None:
    """
    Extract the token from an ``Authorization`` header value.

    Args:
        header_value: Raw header value, possibly None

    Returns:
        The token, or None when the Bearer prefix is missing or nothing follows it

    Example:
        >>> extract_bearer_token("Bearer abc.def.ghi")
        'abc.def.ghi'
        >>> extract_bearer_token("Basic dXNlcjpwYXNz") is None
        True
    """
    if not header_value or not header_value.startswith(BEARER_PREFIX):
        return None
    token = header_value[len(BEARER_PREFIX):].strip()
    return token or None


def is_token_expiring_soon(
    decoded: DecodedToken,
    threshold_minutes: int = 5,
    now: datetime | None = None,
) -> bool:
    """
    Check whether a verified token expires within the threshold.

    Args:
        decoded: Verified token
        threshold_minutes: Window size in minutes
        now: Reference instant (defaults to the current time)

    Returns:
        True if fewer than threshold_minutes remain
    """
    current = int((now or datetime.now(UTC)).timestamp())
    return decoded.expires_at - current < threshold_minutes * 60


def get_token_expiration(token: str | None) -> datetime | None:
    """
    Read the expiry instant of a token without verifying it.

    Args:
        token: Encoded JWT

    Returns:
        Expiry as an aware UTC datetime, or None when the token is malformed
        or carries no usable ``exp`` claim
    """
    if not token or not isinstance(token, str):
        return None
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError:
        return None
    exp = claims.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)) or exp <= 0:
        return None
    return datetime.fromtimestamp(exp, tz=UTC)
