"""
Authentication service for registration, login and session management.

This module provides:
- User registration with email/password
- Login with account lockout
- Token refresh with rotation and reuse detection
- Logout from one device or all devices
- Password change, forgot-password and reset-password
- Google sign-in
- Access token authentication for protected routes

Every failure is a typed AppException; nothing here builds HTTP responses.
"""

import enum
import logging
import math
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings
from core.exceptions import (
    AccountExistsError,
    AccountInactiveError,
    AccountLockedError,
    AppException,
    EmailExistsError,
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    InvalidPasswordError,
    InvalidRefreshTokenError,
    NoPasswordError,
    PasswordChangedError,
    RefreshTokenVerificationFailedError,
    TokenVerificationFailedError,
    UserNotFoundError,
)
from core.security import CredentialHasher
from core.tokens import DecodedToken, TokenPair, TokenPayload, TokenService
from models.enums import AuthProvider, UserRole, UserStatus
from models.user import User
from repositories.user_repository import UserRepository
from services.google import GoogleProfile
from services.password_reset import (
    LoggingResetTokenSink,
    PasswordResetIssuer,
    ResetTokenSink,
)
from services.session_store import SessionStore

logger = logging.getLogger(__name__)

GOOGLE_FALLBACK_NAME = "Google User"


@dataclass(frozen=True)
class AuthResult:
    """A signed-in user and the tokens just issued for them."""

    user: User
    access_token: str
    refresh_token: str


class ForgotPasswordOutcome(str, enum.Enum):
    DISPATCHED = "dispatched"
    UNKNOWN_EMAIL = "unknown_email"


@dataclass(frozen=True)
class ForgotPasswordResult:
    """
    Internal outcome of a forgot-password request.

    Callers must render both outcomes identically.
    """

    outcome: ForgotPasswordOutcome


def _now(now: datetime | None) -> datetime:
    return now or datetime.now(UTC)


class AuthService:
    """
    Service class for authentication operations.

    Composes the credential hasher, token service, session store and
    reset-grant issuer around a single User row per operation. Each public
    method runs in the caller's session and commits its own changes.

    Args:
        session: Async database session
        settings: Application settings
        reset_sink: Where reset tokens are delivered (defaults to logging)
    """

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings,
        reset_sink: ResetTokenSink | None = None,
    ):
        self.session = session
        self.settings = settings
        self.user_repo = UserRepository(session)
        self.hasher = CredentialHasher.from_settings(settings)
        self.tokens = TokenService(settings)
        self.sessions = SessionStore(settings.max_sessions)
        self.reset_issuer = PasswordResetIssuer(session, settings, self.user_repo)
        self.reset_sink = reset_sink or LoggingResetTokenSink(settings.client_url)
        self.lock_duration = timedelta(minutes=settings.lock_time_minutes)

    # -------------------------------------------------------------------------
    # Registration and login
    # -------------------------------------------------------------------------

    async def register(
        self,
        email: str,
        password: str,
        name: str,
        now: datetime | None = None,
    ) -> AuthResult:
        """
        Register a new LOCAL account and sign it in.

        Args:
            email: Email address (normalized to lowercase)
            password: Plain text password, already policy-checked
            name: Display name
            now: Current instant (defaults to now)

        Returns:
            AuthResult with the new user and a token pair

        Raises:
            EmailExistsError: Email already registered (case-insensitive)

        Example:
            result = await auth_service.register(
                email="john@example.com",
                password="SecureP@ss123",
                name="John Doe",
            )
        """
        now = _now(now)
        if await self.user_repo.email_exists(email):
            logger.warning(f"Registration attempted with existing email: {email}")
            raise EmailExistsError(email.strip().lower())

        user = User(
            id=uuid.uuid4(),
            email=email,
            name=name,
            password_hash=await self.hasher.hash_async(password),
            provider=AuthProvider.LOCAL,
            role=UserRole.USER,
            status=UserStatus.ACTIVE,
            is_email_verified=False,
            login_attempts=0,
        )
        pair = self.tokens.issue_token_pair(TokenPayload.for_user(user), now)
        user.refresh_tokens = [pair.refresh_token]

        user = await self.user_repo.add(user)
        await self.session.commit()

        logger.info(f"User registered successfully: {user.id} ({user.email})")
        return AuthResult(user, pair.access_token, pair.refresh_token)

    async def login(
        self,
        email: str,
        password: str,
        now: datetime | None = None,
    ) -> AuthResult:
        """
        Authenticate with email and password.

        Checks, in order: user exists, account not locked, account has a
        password, password matches. A mismatch is counted towards the
        lockout (and committed) before the error is raised.

        Raises:
            InvalidCredentialsError: Unknown email or wrong password
            AccountLockedError: Too many failed attempts
            NoPasswordError: Google-only account
        """
        now = _now(now)
        user = await self.user_repo.get_by_email(email)
        if not user:
            logger.warning(f"Login failed: user not found with email {email}")
            raise InvalidCredentialsError()

        if user.is_locked(now):
            logger.warning(f"Login refused: account {user.id} is locked")
            raise AccountLockedError(
                lock_until=user.lock_until.isoformat(),
                remaining_minutes=user.lock_remaining_minutes(now),
            )

        if not user.has_password:
            raise NoPasswordError(user.provider.value)

        if not await self.hasher.verify_async(password, user.password_hash):
            user.record_failed_attempt(
                now, self.settings.max_login_attempts, self.lock_duration
            )
            await self.session.commit()
            if user.is_locked(now):
                logger.warning(
                    f"Account {user.id} locked after {user.login_attempts} failed logins"
                )
            else:
                logger.warning(f"Login failed: invalid password for user {user.id}")
            raise InvalidCredentialsError()

        user.record_success(now)
        pair = self.tokens.issue_token_pair(TokenPayload.for_user(user), now)
        self.sessions.add_token(user, pair.refresh_token)
        await self.session.commit()

        logger.info(f"User logged in successfully: {user.id} ({user.email})")
        return AuthResult(user, pair.access_token, pair.refresh_token)

    # -------------------------------------------------------------------------
    # Tokens and sessions
    # -------------------------------------------------------------------------

    async def refresh(self, refresh_token: str, now: datetime | None = None) -> TokenPair:
        """
        Exchange a refresh token for a new pair.

        The presented token is replaced in place by the new refresh token.
        A token that verifies but is not registered revokes every session
        of its user.

        Raises:
            RefreshTokenExpiredError / InvalidRefreshTokenError /
            RefreshTokenVerificationFailedError: Token rejected
            UserNotFoundError (401): User no longer exists
            InvalidRefreshTokenError: Token not registered (reuse)
        """
        now = _now(now)
        decoded = self.tokens.verify_refresh_token(refresh_token)
        user = await self._load_token_user(decoded, RefreshTokenVerificationFailedError)

        pair = self.tokens.issue_token_pair(TokenPayload.for_user(user), now)
        try:
            self.sessions.rotate_token(user, refresh_token, pair.refresh_token)
        except InvalidRefreshTokenError:
            await self.session.commit()
            raise
        await self.session.commit()

        logger.info(f"Tokens refreshed for user {user.id}")
        return pair

    async def logout(self, user_id: uuid.UUID, refresh_token: str | None = None) -> None:
        """
        Sign out one device (token given) or every device (no token).

        Idempotent: unknown tokens and unknown users are not errors.
        """
        user = await self.user_repo.get_by_id(user_id)
        if not user:
            return

        if refresh_token:
            self.sessions.remove_token(user, refresh_token)
        else:
            self.sessions.clear_all(user)
        await self.session.commit()
        logger.info(f"User logged out: {user_id}")

    async def logout_all_devices(self, user_id: uuid.UUID) -> None:
        """Revoke every session of a user."""
        user = await self.user_repo.get_by_id(user_id)
        if not user:
            return

        self.sessions.clear_all(user)
        await self.session.commit()
        logger.info(f"User logged out from all devices: {user_id}")

    async def authenticate(self, access_token: str, now: datetime | None = None) -> User:
        """
        Resolve an access token to an active user.

        Raises:
            TokenExpiredError / InvalidTokenError / TokenVerificationFailedError:
                Token rejected
            UserNotFoundError (401): User no longer exists
            AccountInactiveError: Status is not ACTIVE
            PasswordChangedError: Token issued before the last password change
        """
        decoded = self.tokens.verify_access_token(access_token)
        user = await self._load_token_user(decoded, TokenVerificationFailedError)

        if user.status != UserStatus.ACTIVE:
            raise AccountInactiveError(user.status.value)

        if user.password_changed_at is not None and decoded.issued_at < math.floor(
            user.password_changed_at.timestamp()
        ):
            raise PasswordChangedError()

        return user

    async def get_current_user(self, user_id: uuid.UUID) -> User:
        """
        Get a user by id.

        Raises:
            UserNotFoundError: No such user
        """
        user = await self.user_repo.get_by_id(user_id)
        if not user:
            raise UserNotFoundError()
        return user

    async def _load_token_user(
        self, decoded: DecodedToken, malformed: type[AppException]
    ) -> User:
        try:
            user_id = uuid.UUID(decoded.user_id)
        except ValueError:
            raise malformed()

        user = await self.user_repo.get_by_id(user_id)
        if not user:
            raise UserNotFoundError(status_code=401)
        return user

    # -------------------------------------------------------------------------
    # Passwords
    # -------------------------------------------------------------------------

    async def change_password(
        self,
        user_id: uuid.UUID,
        current_password: str,
        new_password: str,
        now: datetime | None = None,
    ) -> None:
        """
        Change a password and sign out every device.

        Raises:
            UserNotFoundError: No such user
            NoPasswordError: Google-only account
            InvalidPasswordError: current_password does not match
        """
        now = _now(now)
        user = await self.get_current_user(user_id)

        if not user.has_password:
            raise NoPasswordError(
                user.provider.value,
                "Cannot change password for accounts using social login",
            )

        if not await self.hasher.verify_async(current_password, user.password_hash):
            logger.warning(
                f"Password change failed: invalid current password for user {user_id}"
            )
            raise InvalidPasswordError()

        user.password_hash = await self.hasher.hash_async(new_password)
        user.password_changed_at = now
        self.sessions.clear_all(user)
        await self.session.commit()

        logger.info(f"Password changed for user {user_id}; all sessions revoked")

    async def forgot_password(
        self, email: str, now: datetime | None = None
    ) -> ForgotPasswordResult:
        """
        Issue a reset grant and hand the token to the reset sink.

        An unknown email is not an error; the outcome tells it apart for
        logging only.

        Raises:
            NoPasswordError: Google-only account
            AccountInactiveError: Account is BLOCKED or INACTIVE
        """
        now = _now(now)
        user = await self.user_repo.get_by_email(email)
        if not user:
            logger.info("Password reset requested for an unknown email")
            return ForgotPasswordResult(ForgotPasswordOutcome.UNKNOWN_EMAIL)

        if not user.has_password:
            raise NoPasswordError(
                user.provider.value,
                "This account uses Google sign-in. Password reset is not available.",
            )

        if user.status in (UserStatus.BLOCKED, UserStatus.INACTIVE):
            raise AccountInactiveError(user.status.value)

        grant = await self.reset_issuer.issue(user, now)
        await self.session.commit()
        await self.reset_sink.send(user, grant.plain_token, grant.expires_at)

        return ForgotPasswordResult(ForgotPasswordOutcome.DISPATCHED)

    async def reset_password(
        self, token: str, new_password: str, now: datetime | None = None
    ) -> None:
        """
        Consume a reset grant and set a new password.

        Raises:
            InvalidOrExpiredTokenError: No live grant matches the token
        """
        now = _now(now)
        user = await self.reset_issuer.verify(token, now)
        if not user:
            logger.warning("Password reset attempted with an invalid or expired token")
            raise InvalidOrExpiredTokenError()

        new_hash = await self.hasher.hash_async(new_password)
        self.reset_issuer.consume(user, new_hash, now)
        await self.session.commit()

        logger.info(f"Password reset completed for user {user.id}; all sessions revoked")

    # -------------------------------------------------------------------------
    # Google sign-in
    # -------------------------------------------------------------------------

    async def google_auth(
        self, profile: GoogleProfile, now: datetime | None = None
    ) -> AuthResult:
        """
        Sign in (or sign up) with a verified Google profile.

        Accounts are never merged across providers: an email that belongs
        to a LOCAL account is refused without touching it.

        Raises:
            AccountExistsError: Email registered under another provider
        """
        now = _now(now)
        email = profile.email.strip().lower()
        user = await self.user_repo.get_by_email_or_provider_id(email, profile.subject)

        if user is None:
            name = (profile.name or "").strip()
            user = User(
                id=uuid.uuid4(),
                email=email,
                name=name if len(name) >= 2 else GOOGLE_FALLBACK_NAME,
                avatar=profile.picture,
                provider=AuthProvider.GOOGLE,
                provider_id=profile.subject,
                role=UserRole.USER,
                status=UserStatus.ACTIVE,
                is_email_verified=True,
                login_attempts=0,
                refresh_tokens=[],
            )
            self.session.add(user)
            logger.info(f"Creating Google account for {email}")
        elif user.provider != AuthProvider.GOOGLE:
            logger.warning(
                f"Google sign-in refused: {email} is registered with {user.provider.value}"
            )
            raise AccountExistsError(user.provider.value)

        pair = self.tokens.issue_token_pair(TokenPayload.for_user(user), now)
        self.sessions.add_token(user, pair.refresh_token)
        user.last_login_at = now
        await self.session.commit()

        logger.info(f"User signed in with Google: {user.id}")
        return AuthResult(user, pair.access_token, pair.refresh_token)
