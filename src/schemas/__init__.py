"""
Pydantic schemas for API request/response validation.

This package provides all Pydantic models used for:
- Request validation
- Response serialization (camelCase JSON)
- API documentation
"""

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
from schemas.common import ApiResponse, CamelModel, PaginationParams, StrictCamelModel
from schemas.user import (
    AdminUpdateUserRequest,
    ChangeRoleRequest,
    ChangeStatusRequest,
    UpdateProfileRequest,
    UserFilterParams,
    UserListData,
    UserResponse,
    UserStatsData,
)

__all__ = [
    # Common
    "ApiResponse",
    "CamelModel",
    "StrictCamelModel",
    "PaginationParams",
    # Auth
    "RegisterRequest",
    "LoginRequest",
    "RefreshTokenRequest",
    "ChangePasswordRequest",
    "ForgotPasswordRequest",
    "ResetPasswordRequest",
    "GoogleAuthRequest",
    "AuthData",
    "AccessTokenData",
    # User
    "UserResponse",
    "UpdateProfileRequest",
    "AdminUpdateUserRequest",
    "ChangeStatusRequest",
    "ChangeRoleRequest",
    "UserListData",
    "UserFilterParams",
    "UserStatsData",
]
