"""
User management API routes.

This module provides:
- GET /api/v1/users/me - Get current user profile
- PATCH /api/v1/users/me - Update current user profile
- GET /api/v1/users - List users (admin only, paginated)
- GET /api/v1/users/stats - User statistics (admin only)
- GET /api/v1/users/{user_id} - Get a user (admin only)
- PATCH /api/v1/users/{user_id} - Update a user (admin only)
- DELETE /api/v1/users/{user_id} - Delete a user (admin only)
- PATCH /api/v1/users/{user_id}/status - Change status (admin only)
- PATCH /api/v1/users/{user_id}/role - Change role (super admin only)
"""

import logging
import uuid

from fastapi import APIRouter, Depends

from api.dependencies import AdminUser, CurrentUser, SuperAdminUser, UserServiceDep
from schemas.common import ApiResponse, PaginationParams
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

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


# ============================================================================
# Self-service Endpoints
# ============================================================================


@router.get(
    "/me",
    response_model=ApiResponse[UserResponse],
    summary="Get current user profile",
    description="Get the profile of the currently authenticated user",
)
async def get_my_profile(current_user: CurrentUser) -> ApiResponse[UserResponse]:
    return ApiResponse(
        message="Profile retrieved successfully",
        data=UserResponse.model_validate(current_user),
    )


@router.patch(
    "/me",
    response_model=ApiResponse[UserResponse],
    summary="Update current user profile",
    description="Update the name and avatar of the currently authenticated user",
)
async def update_my_profile(
    update_data: UpdateProfileRequest,
    current_user: CurrentUser,
    user_service: UserServiceDep,
) -> ApiResponse[UserResponse]:
    """
    Update current user's profile.

    Request body:
        - name: New display name (optional)
        - avatar: New avatar URL (optional)
    """
    user = await user_service.update_profile(
        current_user.id, name=update_data.name, avatar=update_data.avatar
    )
    return ApiResponse(
        message="Profile updated successfully",
        data=UserResponse.model_validate(user),
    )


# ============================================================================
# Administration Endpoints
# ============================================================================


@router.get(
    "",
    response_model=ApiResponse[UserListData],
    summary="List users",
    description="List users newest first, filtered by role and status (admin only)",
)
async def list_users(
    current_user: AdminUser,
    user_service: UserServiceDep,
    pagination: PaginationParams = Depends(),
    filters: UserFilterParams = Depends(),
) -> ApiResponse[UserListData]:
    """
    List users with pagination and filtering.

    Query parameters:
        - page: Page number (default: 1)
        - limit: Items per page (default: 10, max: 100)
        - role: Filter by role (optional)
        - status: Filter by status (optional)
    """
    page = await user_service.list_users(
        page=pagination.page,
        limit=pagination.limit,
        role=filters.role,
        status=filters.status,
    )
    return ApiResponse(
        message="Users retrieved successfully",
        data=UserListData(
            users=[UserResponse.model_validate(u) for u in page.users],
            total=page.total,
            page=page.page,
            total_pages=page.total_pages,
        ),
    )


@router.get(
    "/stats",
    response_model=ApiResponse[UserStatsData],
    summary="User statistics",
    description="Totals by status, role and provider (admin only)",
)
async def get_user_stats(
    current_user: AdminUser,
    user_service: UserServiceDep,
) -> ApiResponse[UserStatsData]:
    stats = await user_service.get_user_stats()
    return ApiResponse(
        message="User statistics retrieved successfully",
        data=UserStatsData(
            total_users=stats.total_users,
            active_users=stats.active_users,
            blocked_users=stats.blocked_users,
            users_by_role=stats.users_by_role,
            users_by_provider=stats.users_by_provider,
        ),
    )


@router.get(
    "/{user_id}",
    response_model=ApiResponse[UserResponse],
    summary="Get a user",
    description="Get any user's profile (admin only)",
)
async def get_user_by_id(
    user_id: uuid.UUID,
    current_user: AdminUser,
    user_service: UserServiceDep,
) -> ApiResponse[UserResponse]:
    """
    Raises:
        - 403 Forbidden: If user is not admin
        - 404 Not Found: If user not found
    """
    user = await user_service.get_user(user_id)
    return ApiResponse(
        message="User retrieved successfully",
        data=UserResponse.model_validate(user),
    )


@router.patch(
    "/{user_id}",
    response_model=ApiResponse[UserResponse],
    summary="Update a user",
    description="Update a user's name, avatar or email (admin only)",
)
async def update_user(
    user_id: uuid.UUID,
    update_data: AdminUpdateUserRequest,
    current_user: AdminUser,
    user_service: UserServiceDep,
) -> ApiResponse[UserResponse]:
    """
    Raises:
        - 404 Not Found: If user not found
        - 409 Conflict: If the email belongs to another user
    """
    user = await user_service.update_user(
        user_id,
        name=update_data.name,
        avatar=update_data.avatar,
        email=update_data.email,
    )
    logger.info(f"Admin {current_user.id} updated user {user_id}")
    return ApiResponse(
        message="User updated successfully",
        data=UserResponse.model_validate(user),
    )


@router.delete(
    "/{user_id}",
    response_model=ApiResponse[None],
    summary="Delete a user",
    description="Permanently delete a user (admin only). Super admins cannot be deleted.",
)
async def delete_user(
    user_id: uuid.UUID,
    current_user: AdminUser,
    user_service: UserServiceDep,
) -> ApiResponse[None]:
    await user_service.delete_user(user_id)
    logger.info(f"Admin {current_user.id} deleted user {user_id}")
    return ApiResponse(message="User deleted successfully")


@router.patch(
    "/{user_id}/status",
    response_model=ApiResponse[UserResponse],
    summary="Change user status",
    description="Set ACTIVE, INACTIVE or BLOCKED (admin only). Super admins cannot be blocked.",
)
async def change_user_status(
    user_id: uuid.UUID,
    status_data: ChangeStatusRequest,
    current_user: AdminUser,
    user_service: UserServiceDep,
) -> ApiResponse[UserResponse]:
    user = await user_service.change_user_status(user_id, status_data.status)
    logger.info(
        f"Admin {current_user.id} set status of {user_id} to {status_data.status.value}"
    )
    return ApiResponse(
        message="User status updated successfully",
        data=UserResponse.model_validate(user),
    )


@router.patch(
    "/{user_id}/role",
    response_model=ApiResponse[UserResponse],
    summary="Change user role",
    description="Set USER, ADMIN or SUPER_ADMIN (super admin only)",
)
async def change_user_role(
    user_id: uuid.UUID,
    role_data: ChangeRoleRequest,
    current_user: SuperAdminUser,
    user_service: UserServiceDep,
) -> ApiResponse[UserResponse]:
    user = await user_service.change_user_role(user_id, role_data.role)
    logger.info(
        f"Super admin {current_user.id} set role of {user_id} to {role_data.role.value}"
    )
    return ApiResponse(
        message="User role updated successfully",
        data=UserResponse.model_validate(user),
    )
