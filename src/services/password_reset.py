"""
Password reset grants.

A grant is two columns on the user: the SHA-256 of a random token and its
expiry. One grant per user; a newer request overwrites the older one. The
plaintext token leaves the service exactly once, through a ResetTokenSink.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol
from urllib.parse import quote

from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings
from core.security import generate_reset_token, hash_reset_token
from models.user import User
from repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResetGrant:
    """A freshly issued reset token and its expiry."""

    plain_token: str
    expires_at: datetime


class PasswordResetIssuer:
    """
    Issues, verifies and consumes reset grants.

    Args:
        session: Async database session
        settings: Application settings (grant lifetime)
        user_repo: Repository to share with the caller (built from session if omitted)
    """

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings,
        user_repo: UserRepository | None = None,
    ):
        self.session = session
        self.user_repo = user_repo or UserRepository(session)
        self.ttl = timedelta(minutes=settings.password_reset_expire_minutes)

    async def issue(self, user: User, now: datetime) -> ResetGrant:
        """
        Create a grant for user and store its hash.

        Written with a direct UPDATE so model validation is skipped.

        Args:
            user: Account to reset
            now: Current instant

        Returns:
            ResetGrant with the only copy of the plaintext token
        """
        plain_token = generate_reset_token()
        expires_at = now + self.ttl
        token_hash = hash_reset_token(plain_token)

        await self.user_repo.set_reset_grant(user.id, token_hash, expires_at)
        user.password_reset_token_hash = token_hash
        user.password_reset_expires_at = expires_at

        logger.info(f"Password reset grant issued for user {user.id}")
        return ResetGrant(plain_token=plain_token, expires_at=expires_at)

    async def verify(self, plain_token: str, now: datetime) -> User | None:
        """
        Find the user holding a live grant for plain_token.

        Returns:
            User, or None when the token is unknown or expired
        """
        return await self.user_repo.get_by_reset_token_hash(
            hash_reset_token(plain_token), now
        )

    def consume(self, user: User, new_password_hash: str, now: datetime) -> None:
        """
        Apply a reset: new hash, grant cleared, sessions cleared.

        Changes are staged on the instance; the caller commits them in one
        transaction.
        """
        user.password_hash = new_password_hash
        user.password_reset_token_hash = None
        user.password_reset_expires_at = None
        user.refresh_tokens = []
        user.password_changed_at = now


# =============================================================================
# Delivery
# =============================================================================


class ResetTokenSink(Protocol):
    """Delivers a reset token to its owner (email, queue, ...)."""

    async def send(self, user: User, token: str, expires_at: datetime) -> None: ...


class LoggingResetTokenSink:
    """
    Default sink: records that a grant went out.

    The link itself is only logged at DEBUG level.
    """

    def __init__(self, client_url: str):
        self.client_url = client_url.rstrip("/")

    def build_link(self, token: str) -> str:
        return f"{self.client_url}/reset-password?token={quote(token)}"

    async def send(self, user: User, token: str, expires_at: datetime) -> None:
        logger.info(
            f"Password reset requested for user {user.id}; "
            f"grant expires at {expires_at.isoformat()}"
        )
        logger.debug(f"Password reset link for user {user.id}: {self.build_link(token)}")
