"""
Refresh-token registry kept on the user row.

A session is one entry in User.refresh_tokens. Logging out of one device
removes that entry; logging out everywhere empties the list.

Every operation assigns a new list to the attribute; SQLAlchemy does not
track in-place mutation of JSON columns.

Concurrency: mutations are read-modify-write of a single row with no
version check. Two concurrent rotations for the same user are
last-write-wins.
"""

import logging

from core.exceptions import InvalidRefreshTokenError
from models.user import User

logger = logging.getLogger(__name__)


class SessionStore:
    """
    Bounded, ordered registry of a user's valid refresh tokens.

    Oldest first. When the cap is exceeded the oldest entries are evicted.
    """

    def __init__(self, max_sessions: int = 5):
        self.max_sessions = max_sessions

    def add_token(self, user: User, token: str) -> None:
        """
        Append a token, evicting the oldest entries beyond the cap.

        Args:
            user: Owner of the session list
            token: Newly issued refresh token
        """
        tokens = list(user.refresh_tokens or [])
        tokens.append(token)
        if len(tokens) > self.max_sessions:
            evicted = len(tokens) - self.max_sessions
            logger.info(f"Session cap reached for user {user.id}: evicting {evicted}")
            tokens = tokens[evicted:]
        user.refresh_tokens = tokens

    def rotate_token(self, user: User, old_token: str, new_token: str) -> None:
        """
        Replace old_token with new_token at the same position.

        An unknown old_token means a stale or stolen token is being replayed:
        every session of the user is revoked.

        Raises:
            InvalidRefreshTokenError: old_token is not registered
        """
        tokens = list(user.refresh_tokens or [])
        try:
            index = tokens.index(old_token)
        except ValueError:
            logger.warning(
                f"Refresh token reuse detected for user {user.id}: "
                f"revoking {len(tokens)} session(s)"
            )
            user.refresh_tokens = []
            raise InvalidRefreshTokenError("Invalid refresh token. Please login again.")

        tokens[index] = new_token
        user.refresh_tokens = tokens

    def remove_token(self, user: User, token: str) -> None:
        """Drop one session. Unknown tokens are ignored."""
        user.refresh_tokens = [t for t in (user.refresh_tokens or []) if t != token]

    def clear_all(self, user: User) -> None:
        """Drop every session."""
        user.refresh_tokens = []
