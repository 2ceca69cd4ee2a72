"""
User management service.

This module provides:
- Self-service profile read/update
- Admin listing with filters and pagination
- Admin update, delete, status and role changes
- User statistics
"""

import logging
import math
import uuid
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import (
    CannotBlockSuperAdminError,
    CannotDeleteSuperAdminError,
    EmailExistsError,
    UserNotFoundError,
)
from models.enums import UserRole, UserStatus
from models.user import User
from repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserPage:
    users: list[User]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit > 0 else 0


@dataclass(frozen=True)
class UserStats:
    total_users: int
    active_users: int
    blocked_users: int
    users_by_role: dict[str, int]
    users_by_provider: dict[str, int]


class UserService:
    """
    Service class for user management.

    Authorization (who may call what) is enforced by the route dependencies;
    this service enforces the SUPER_ADMIN protections.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize UserService.

        Args:
            session: Async database session
        """
        self.session = session
        self.user_repo = UserRepository(session)

    async def get_user(self, user_id: uuid.UUID) -> User:
        """
        Get a user by id.

        Raises:
            UserNotFoundError: No such user
        """
        user = await self.user_repo.get_by_id(user_id)
        if not user:
            raise UserNotFoundError()
        return user

    async def list_users(
        self,
        page: int = 1,
        limit: int = 10,
        role: UserRole | None = None,
        status: UserStatus | None = None,
    ) -> UserPage:
        """
        List users, newest first.

        Args:
            page: 1-based page number
            limit: Page size
            role: Optional role filter
            status: Optional status filter

        Returns:
            UserPage with the users and pagination totals
        """
        offset = (page - 1) * limit
        users = await self.user_repo.filter_users(
            role=role, status=status, offset=offset, limit=limit
        )
        total = await self.user_repo.count_filtered(role=role, status=status)
        return UserPage(users=users, total=total, page=page, limit=limit)

    async def update_profile(
        self,
        user_id: uuid.UUID,
        name: str | None = None,
        avatar: str | None = None,
    ) -> User:
        """Update the caller's own name and avatar."""
        return await self.update_user(user_id, name=name, avatar=avatar)

    async def update_user(
        self,
        user_id: uuid.UUID,
        name: str | None = None,
        avatar: str | None = None,
        email: str | None = None,
    ) -> User:
        """
        Update profile fields. Fields left as None are unchanged.

        Raises:
            UserNotFoundError: No such user
            EmailExistsError: email belongs to another user
        """
        user = await self.get_user(user_id)

        if email is not None and email.strip().lower() != user.email:
            if await self.user_repo.email_exists(email, exclude_user_id=user.id):
                raise EmailExistsError(email.strip().lower())
            user.email = email
        if name is not None:
            user.name = name
        if avatar is not None:
            user.avatar = avatar

        user = await self.user_repo.update(user)
        await self.session.commit()

        logger.info(f"User updated: {user.id}")
        return user

    async def delete_user(self, user_id: uuid.UUID) -> None:
        """
        Permanently delete a user.

        Raises:
            UserNotFoundError: No such user
            CannotDeleteSuperAdminError: Target is a SUPER_ADMIN
        """
        user = await self.get_user(user_id)
        if user.role == UserRole.SUPER_ADMIN:
            logger.warning(f"Refused to delete super admin {user.id}")
            raise CannotDeleteSuperAdminError()

        await self.user_repo.delete(user)
        await self.session.commit()
        logger.info(f"User deleted: {user_id}")

    async def change_user_status(self, user_id: uuid.UUID, status: UserStatus) -> User:
        """
        Set a user's status.

        Raises:
            UserNotFoundError: No such user
            CannotBlockSuperAdminError: BLOCKED requested for a SUPER_ADMIN
        """
        user = await self.get_user(user_id)
        if user.role == UserRole.SUPER_ADMIN and status == UserStatus.BLOCKED:
            logger.warning(f"Refused to block super admin {user.id}")
            raise CannotBlockSuperAdminError()

        user.status = status
        user = await self.user_repo.update(user)
        await self.session.commit()

        logger.info(f"User {user.id} status changed to {status.value}")
        return user

    async def change_user_role(self, user_id: uuid.UUID, role: UserRole) -> User:
        """
        Set a user's role.

        Raises:
            UserNotFoundError: No such user
        """
        user = await self.get_user(user_id)
        user.role = role
        user = await self.user_repo.update(user)
        await self.session.commit()

        logger.info(f"User {user.id} role changed to {role.value}")
        return user

    async def get_user_stats(self) -> UserStats:
        """Counts for the admin dashboard."""
        return UserStats(
            total_users=await self.user_repo.count(),
            active_users=await self.user_repo.count_filtered(status=UserStatus.ACTIVE),
            blocked_users=await self.user_repo.count_filtered(status=UserStatus.BLOCKED),
            users_by_role=await self.user_repo.count_grouped(User.role),
            users_by_provider=await self.user_repo.count_grouped(User.provider),
        )
