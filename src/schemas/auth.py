"""
Authentication Pydantic schemas for API request/response handling.

This module provides:
- Register, login, Google sign-in requests
- Refresh/logout requests (token optional; the cookie is the fallback)
- Change, forgot and reset password requests with the password policy
- Auth response payloads
"""

from pydantic import EmailStr, Field, field_validator, model_validator

from core.security import validate_password_strength
from schemas.common import CamelModel, StrictCamelModel
from schemas.user import UserResponse


def _check_strength(value: str) -> str:
    is_valid, error = validate_password_strength(value)
    if not is_valid:
        raise ValueError(error)
    return value


def _lower_email(value: str) -> str:
    return value.strip().lower()


# =============================================================================
# Requests
# =============================================================================


class RegisterRequest(StrictCamelModel):
    """
    Schema for user registration.

    Attributes:
        email: Email address (stored lowercase)
        password: Must satisfy the password policy
        name: Display name, 2-100 characters
    """

    email: EmailStr = Field(description="User's email address")
    password: str = Field(description="Password (8-100 chars, mixed case, digit, special)")
    name: str = Field(min_length=2, max_length=100, description="Display name")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return _lower_email(value)

    @field_validator("password")
    @classmethod
    def password_policy(cls, value: str) -> str:
        return _check_strength(value)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 2:
            raise ValueError("Name must be at least 2 characters")
        return value


class LoginRequest(StrictCamelModel):
    """
    Schema for user login request.

    Attributes:
        email: User's email address
        password: User's password
    """

    email: EmailStr = Field(description="User's email address")
    password: str = Field(min_length=1, description="User's password")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return _lower_email(value)


class RefreshTokenRequest(StrictCamelModel):
    """Token refresh / logout body. Empty means: use the cookie."""

    refresh_token: str | None = Field(default=None, description="JWT refresh token")


class ChangePasswordRequest(StrictCamelModel):
    current_password: str = Field(min_length=1)
    new_password: str
    confirm_password: str

    @field_validator("new_password")
    @classmethod
    def password_policy(cls, value: str) -> str:
        return _check_strength(value)

    @model_validator(mode="after")
    def check_passwords(self) -> "ChangePasswordRequest":
        if self.new_password != self.confirm_password:
            raise ValueError("Passwords do not match")
        if self.new_password == self.current_password:
            raise ValueError("New password must be different from current password")
        return self


class ForgotPasswordRequest(StrictCamelModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return _lower_email(value)


class ResetPasswordRequest(StrictCamelModel):
    token: str = Field(min_length=1)
    new_password: str
    confirm_password: str

    @field_validator("new_password")
    @classmethod
    def password_policy(cls, value: str) -> str:
        return _check_strength(value)

    @model_validator(mode="after")
    def check_passwords(self) -> "ResetPasswordRequest":
        if self.new_password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class GoogleAuthRequest(StrictCamelModel):
    """Google sign-in with an ID token obtained by the client."""

    id_token: str = Field(min_length=1, description="Google ID token")


# =============================================================================
# Responses
# =============================================================================


class AuthData(CamelModel):
    """Returned by register, login and Google sign-in."""

    user: UserResponse
    access_token: str


class AccessTokenData(CamelModel):
    """Returned by token refresh."""

    access_token: str
