"""
User Pydantic schemas for API request/response handling.

This module provides:
- UserResponse: the public view of a user (no credentials, no session state)
- Profile and admin update requests
- Status/role change requests
- List and statistics payloads
"""

import uuid
from datetime import datetime

from pydantic import EmailStr, Field, field_validator

from models.enums import AuthProvider, UserRole, UserStatus
from schemas.common import CamelModel, StrictCamelModel


class UserResponse(CamelModel):
    """
    Public user view.

    Never includes password hash, refresh tokens, lockout or reset state.
    """

    id: uuid.UUID
    email: str
    name: str
    avatar: str | None = None
    role: UserRole
    status: UserStatus
    provider: AuthProvider
    is_email_verified: bool
    last_login_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class UpdateProfileRequest(StrictCamelModel):
    """Self-service profile update."""

    name: str | None = Field(default=None, min_length=2, max_length=100)
    avatar: str | None = Field(default=None, max_length=2048)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str | None) -> str | None:
        return value.strip() if value is not None else None


class AdminUpdateUserRequest(UpdateProfileRequest):
    """Admin update: profile fields plus email."""

    email: EmailStr | None = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str | None) -> str | None:
        return value.strip().lower() if value is not None else None


class ChangeStatusRequest(StrictCamelModel):
    status: UserStatus


class ChangeRoleRequest(StrictCamelModel):
    role: UserRole


class UserListData(CamelModel):
    """Paginated user list."""

    users: list[UserResponse]
    total: int
    page: int
    total_pages: int


class UserStatsData(CamelModel):
    total_users: int
    active_users: int
    blocked_users: int
    users_by_role: dict[str, int]
    users_by_provider: dict[str, int]


class UserFilterParams(CamelModel):
    """Query filters for the admin user list."""

    role: UserRole | None = None
    status: UserStatus | None = None
