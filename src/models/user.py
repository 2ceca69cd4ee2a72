"""
User model.

This module defines the single persisted entity of the service. Besides the
profile it carries all per-user auth state:
- refresh_tokens: the session registry (one entry per signed-in device)
- login_attempts / lock_until: account lockout
- password_reset_token_hash / password_reset_expires_at: the outstanding
  reset grant
- password_changed_at: access tokens issued before it are refused
"""

import math
import re
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import JSON, Boolean, Integer, String
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, validates

from core.exceptions import RecordValidationError
from models.base import Base
from models.enums import AuthProvider, UserRole, UserStatus
from models.mixins import TimestampMixin
from models.types import TZDateTime

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100


# =============================================================================
# User Model
# =============================================================================


class User(Base, TimestampMixin):
    """
    User model for authentication and profile management.

    Attributes:
        id: UUID primary key
        email: Unique email, stored trimmed and lowercased
        name: Display name (2-100 characters)
        avatar: Optional avatar URL
        password_hash: Argon2id hash; NULL for accounts that only use Google
        provider: LOCAL or GOOGLE
        provider_id: External subject id for OAuth accounts
        role: USER, ADMIN or SUPER_ADMIN
        status: ACTIVE, INACTIVE, BLOCKED or PENDING
        is_email_verified: Set for Google accounts at creation
        refresh_tokens: Currently valid refresh tokens, oldest first
        login_attempts: Consecutive failed logins in the current window
        lock_until: End of the current lock, if any
        password_changed_at: Last password change or reset
        password_reset_token_hash: SHA-256 of the outstanding reset token
        password_reset_expires_at: Expiry of the outstanding reset token
        last_login_at: Last successful login

    Session list:
        refresh_tokens is a JSON array. Always assign a new list; in-place
        mutation is not tracked by SQLAlchemy.
    """

    __tablename__ = "users"

    # Identity
    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
    )

    name: Mapped[str] = mapped_column(
        String(NAME_MAX_LENGTH),
        nullable=False,
    )

    avatar: Mapped[Optional[str]] = mapped_column(
        String(2048),
        nullable=True,
    )

    # Credentials
    password_hash: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )

    provider: Mapped[AuthProvider] = mapped_column(
        SQLEnum(AuthProvider, name="auth_provider", create_constraint=True),
        nullable=False,
        default=AuthProvider.LOCAL,
    )

    provider_id: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        unique=True,
    )

    # Authorization
    role: Mapped[UserRole] = mapped_column(
        SQLEnum(UserRole, name="user_role", create_constraint=True),
        nullable=False,
        default=UserRole.USER,
        index=True,
    )

    status: Mapped[UserStatus] = mapped_column(
        SQLEnum(UserStatus, name="user_status", create_constraint=True),
        nullable=False,
        default=UserStatus.ACTIVE,
        index=True,
    )

    is_email_verified: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    # Sessions
    refresh_tokens: Mapped[list[str]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False,
        default=list,
    )

    # Lockout
    login_attempts: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    lock_until: Mapped[Optional[datetime]] = mapped_column(
        TZDateTime(),
        nullable=True,
    )

    # Password lifecycle
    password_changed_at: Mapped[Optional[datetime]] = mapped_column(
        TZDateTime(),
        nullable=True,
    )

    password_reset_token_hash: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
        index=True,
    )

    password_reset_expires_at: Mapped[Optional[datetime]] = mapped_column(
        TZDateTime(),
        nullable=True,
    )

    # Activity tracking
    last_login_at: Mapped[Optional[datetime]] = mapped_column(
        TZDateTime(),
        nullable=True,
    )

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------

    @validates("email")
    def validate_email(self, key: str, value: str) -> str:
        """Trim and lowercase; reject anything that is not an address."""
        if value is None:
            raise RecordValidationError(key, "Email is required", value, "required")
        normalized = value.strip().lower()
        if not EMAIL_PATTERN.match(normalized):
            raise RecordValidationError(
                key, "Please provide a valid email", value, "format"
            )
        return normalized

    @validates("name")
    def validate_name(self, key: str, value: str) -> str:
        if value is None:
            raise RecordValidationError(key, "Name is required", value, "required")
        stripped = value.strip()
        if len(stripped) < NAME_MIN_LENGTH:
            raise RecordValidationError(
                key,
                f"Name must be at least {NAME_MIN_LENGTH} characters",
                value,
                "minlength",
            )
        if len(stripped) > NAME_MAX_LENGTH:
            raise RecordValidationError(
                key,
                f"Name cannot exceed {NAME_MAX_LENGTH} characters",
                value,
                "maxlength",
            )
        return stripped

    # -------------------------------------------------------------------------
    # Account lockout
    # -------------------------------------------------------------------------

    @property
    def has_password(self) -> bool:
        return bool(self.password_hash)

    def is_locked(self, now: datetime) -> bool:
        """True while lock_until is set and still in the future."""
        return self.lock_until is not None and self.lock_until > now

    def lock_remaining_minutes(self, now: datetime) -> int:
        """Whole minutes until the lock ends, rounded up (0 when unlocked)."""
        if not self.is_locked(now):
            return 0
        return math.ceil((self.lock_until - now).total_seconds() / 60)

    def record_failed_attempt(
        self,
        now: datetime,
        max_attempts: int,
        lock_duration: timedelta,
    ) -> None:
        """
        Count a failed password check.

        - An expired lock starts a fresh window: attempts = 1, lock cleared.
        - A live lock is left alone (no extension, no further counting).
        - Otherwise the counter grows and reaching max_attempts locks the
          account for lock_duration.

        Args:
            now: Current instant
            max_attempts: Failures that trigger a lock
            lock_duration: Length of the lock
        """
        if self.lock_until is not None and self.lock_until <= now:
            self.login_attempts = 1
            self.lock_until = None
            return

        if self.is_locked(now):
            return

        self.login_attempts = (self.login_attempts or 0) + 1
        if self.login_attempts >= max_attempts:
            self.lock_until = now + lock_duration

    def record_success(self, now: datetime) -> None:
        """Reset the lockout state after a successful login."""
        self.login_attempts = 0
        self.lock_until = None
        self.last_login_at = now

    def __repr__(self) -> str:
        """String representation of User."""
        return f"User(id={self.id}, email={self.email}, role={self.role})"
