"""
Custom exception classes for Sentinel Auth.

This module defines a hierarchy of custom exceptions that map to HTTP status codes
and machine-readable error codes. They are the "operational" errors of the
service: expected, client-caused failures whose message is always safe to show.

Exception hierarchy:
    AppException (base)
    ├── BadRequestError (400)
    │   ├── NoPasswordError
    │   └── InvalidOrExpiredTokenError
    ├── AuthenticationError (401)
    │   ├── InvalidCredentialsError
    │   ├── NoTokenError
    │   ├── MissingRefreshTokenError
    │   ├── InvalidTokenError / TokenExpiredError / TokenVerificationFailedError
    │   ├── InvalidRefreshTokenError / RefreshTokenExpiredError /
    │   │   RefreshTokenVerificationFailedError
    │   ├── PasswordChangedError
    │   ├── InvalidPasswordError
    │   └── InvalidGoogleTokenError
    ├── AuthorizationError (403)
    │   ├── AccountInactiveError
    │   ├── InsufficientPermissionsError
    │   ├── CannotDeleteSuperAdminError
    │   └── CannotBlockSuperAdminError
    ├── UserNotFoundError (404, or 401 while authenticating)
    ├── AlreadyExistsError (409)
    │   ├── EmailExistsError
    │   └── AccountExistsError
    ├── AccountLockedError (423)
    └── GoogleAuthDisabledError (503)

    RecordValidationError (raised by model validators, mapped to 400)
"""

from typing import Any


class AppException(Exception):
    """
    Base exception class for all application exceptions.

    All custom exceptions should inherit from this class to ensure
    consistent error handling and response formatting.

    Attributes:
        status_code: HTTP status code for the error
        error_code: Machine-readable error code
        message: Human-readable error message
        details: Optional additional error details (sent as additionalData)
        is_operational: False for failures that indicate a bug or outage
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
        is_operational: bool = True,
    ) -> None:
        """
        Initialize application exception.

        Args:
            message: Human-readable error message
            status_code: HTTP status code (default: 500)
            error_code: Machine-readable error code
            details: Optional dictionary with additional error details
            is_operational: Whether the error is an expected, client-caused one
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        self.is_operational = is_operational


# =============================================================================
# Bad Request Errors (400)
# =============================================================================


class BadRequestError(AppException):
    """Base class for requests that are well-formed but cannot be honoured."""

    def __init__(
        self,
        message: str = "Bad request",
        error_code: str = "BAD_REQUEST",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=400,
            error_code=error_code,
            details=details,
        )


class NoPasswordError(BadRequestError):
    """Raised when a password operation targets an OAuth-only account."""

    def __init__(
        self,
        provider: str,
        message: str | None = None,
    ) -> None:
        super().__init__(
            message=message
            or "This account uses Google sign-in. Please login with Google.",
            error_code="NO_PASSWORD",
            details={"provider": provider},
        )


class InvalidOrExpiredTokenError(BadRequestError):
    """Raised when a password reset token is unknown or past its expiry."""

    def __init__(
        self,
        message: str = "Password reset token is invalid or has expired",
    ) -> None:
        super().__init__(message=message, error_code="INVALID_OR_EXPIRED_TOKEN")


# =============================================================================
# Authentication Errors (401 Unauthorized)
# =============================================================================


class AuthenticationError(AppException):
    """Base class for authentication errors."""

    def __init__(
        self,
        message: str = "Authentication failed",
        error_code: str = "AUTHENTICATION_FAILED",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=401,
            error_code=error_code,
            details=details,
        )


class InvalidCredentialsError(AuthenticationError):
    """Raised when login credentials are invalid."""

    def __init__(self, message: str = "Invalid email or password") -> None:
        super().__init__(message=message, error_code="INVALID_CREDENTIALS")


class NoTokenError(AuthenticationError):
    """Raised when a protected route is called without an access token."""

    def __init__(self, message: str = "Authentication required. Please log in.") -> None:
        super().__init__(message=message, error_code="NO_TOKEN")


class MissingRefreshTokenError(AuthenticationError):
    """Raised when the refresh endpoint receives no refresh token."""

    def __init__(self, message: str = "Refresh token is required") -> None:
        super().__init__(message=message, error_code="NO_REFRESH_TOKEN")


class InvalidTokenError(AuthenticationError):
    """Raised when an access token is invalid or malformed."""

    def __init__(self, message: str = "Invalid access token") -> None:
        super().__init__(message=message, error_code="INVALID_TOKEN")


class TokenExpiredError(AuthenticationError):
    """Raised when an access token has expired."""

    def __init__(self, message: str = "Access token has expired") -> None:
        super().__init__(message=message, error_code="TOKEN_EXPIRED")


class TokenVerificationFailedError(AuthenticationError):
    """Raised when an access token cannot be verified for any other reason."""

    def __init__(self, message: str = "Token verification failed") -> None:
        super().__init__(message=message, error_code="TOKEN_VERIFICATION_FAILED")


class InvalidRefreshTokenError(AuthenticationError):
    """Raised when a refresh token is invalid or no longer registered."""

    def __init__(self, message: str = "Invalid refresh token") -> None:
        super().__init__(message=message, error_code="INVALID_REFRESH_TOKEN")


class RefreshTokenExpiredError(AuthenticationError):
    """Raised when a refresh token has expired."""

    def __init__(
        self, message: str = "Refresh token has expired. Please login again"
    ) -> None:
        super().__init__(message=message, error_code="REFRESH_TOKEN_EXPIRED")


class RefreshTokenVerificationFailedError(AuthenticationError):
    """Raised when a refresh token cannot be verified for any other reason."""

    def __init__(self, message: str = "Refresh token verification failed") -> None:
        super().__init__(
            message=message, error_code="REFRESH_TOKEN_VERIFICATION_FAILED"
        )


class PasswordChangedError(AuthenticationError):
    """Raised when an access token predates the user's last password change."""

    def __init__(
        self, message: str = "Password was recently changed. Please log in again."
    ) -> None:
        super().__init__(message=message, error_code="PASSWORD_CHANGED")


class InvalidPasswordError(AuthenticationError):
    """Raised when the current password given for a change is wrong."""

    def __init__(self, message: str = "Current password is incorrect") -> None:
        super().__init__(message=message, error_code="INVALID_PASSWORD")


class InvalidGoogleTokenError(AuthenticationError):
    """Raised when Google rejects an ID token or its claims do not match."""

    def __init__(self, message: str = "Invalid Google ID token") -> None:
        super().__init__(message=message, error_code="INVALID_GOOGLE_TOKEN")


# =============================================================================
# Authorization Errors (403 Forbidden)
# =============================================================================


class AuthorizationError(AppException):
    """Base class for authorization errors."""

    def __init__(
        self,
        message: str = "You do not have permission to perform this action",
        error_code: str = "FORBIDDEN",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=403,
            error_code=error_code,
            details=details,
        )


class AccountInactiveError(AuthorizationError):
    """Raised when a non-ACTIVE account tries to use the API."""

    def __init__(self, status: str) -> None:
        super().__init__(
            message=f"Your account is {status.lower()}. Please contact support.",
            error_code="ACCOUNT_INACTIVE",
            details={"status": status},
        )


class InsufficientPermissionsError(AuthorizationError):
    """Raised when the user's role is not allowed on a route."""

    def __init__(
        self,
        message: str = "You do not have permission to perform this action",
    ) -> None:
        super().__init__(message=message, error_code="FORBIDDEN")


class CannotDeleteSuperAdminError(AuthorizationError):
    """Raised when deleting a SUPER_ADMIN is attempted."""

    def __init__(self) -> None:
        super().__init__(
            message="Cannot delete super admin account",
            error_code="CANNOT_DELETE_SUPER_ADMIN",
        )


class CannotBlockSuperAdminError(AuthorizationError):
    """Raised when blocking a SUPER_ADMIN is attempted."""

    def __init__(self) -> None:
        super().__init__(
            message="Cannot block super admin account",
            error_code="CANNOT_BLOCK_SUPER_ADMIN",
        )


# =============================================================================
# Resource Errors (404, 409)
# =============================================================================


class UserNotFoundError(AppException):
    """
    Raised when the user a request refers to does not exist.

    Authentication paths use status 401 because the credential points
    at a user that is gone; everything else uses 404.
    """

    def __init__(self, status_code: int = 404) -> None:
        super().__init__(
            message="User not found",
            status_code=status_code,
            error_code="USER_NOT_FOUND",
        )


class AlreadyExistsError(AppException):
    """Raised when attempting to create a resource that already exists."""

    def __init__(
        self,
        message: str = "Resource already exists",
        error_code: str = "ALREADY_EXISTS",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=409,
            error_code=error_code,
            details=details,
        )


class EmailExistsError(AlreadyExistsError):
    """Raised when registering or updating to an email that is taken."""

    def __init__(self, email: str) -> None:
        super().__init__(
            message="Email already registered",
            error_code="EMAIL_EXISTS",
            details={"email": email},
        )


class AccountExistsError(AlreadyExistsError):
    """Raised when an OAuth login hits an email owned by another provider."""

    def __init__(self, provider: str) -> None:
        super().__init__(
            message=(
                "An account with this email already exists. "
                "Please sign in with your password."
            ),
            error_code="ACCOUNT_EXISTS",
            details={"provider": provider},
        )


# =============================================================================
# Other Errors
# =============================================================================


class AccountLockedError(AppException):
    """Raised when too many failed logins have locked an account."""

    def __init__(self, lock_until: str, remaining_minutes: int) -> None:
        super().__init__(
            message=f"Account is locked. Try again in {remaining_minutes} minutes",
            status_code=423,
            error_code="ACCOUNT_LOCKED",
            details={
                "lockUntil": lock_until,
                "remainingMinutes": remaining_minutes,
            },
        )


class GoogleAuthDisabledError(AppException):
    """Raised when Google sign-in is requested but no client id is configured."""

    def __init__(self) -> None:
        super().__init__(
            message="Google sign-in is not configured",
            status_code=503,
            error_code="GOOGLE_AUTH_DISABLED",
        )


# =============================================================================
# Model-level Validation
# =============================================================================


class RecordValidationError(ValueError):
    """
    Raised by model validators when a column value is rejected.

    Not an AppException: it comes from the persistence layer and is turned
    into a 400 response by the error classifier.

    Attributes:
        field: Column name
        message: Human-readable reason
        value: Rejected value
        kind: Short rule name (e.g. "format", "minlength")
    """

    def __init__(
        self,
        field: str,
        message: str,
        value: Any = None,
        kind: str = "invalid",
    ) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message
        self.value = value
        self.kind = kind
