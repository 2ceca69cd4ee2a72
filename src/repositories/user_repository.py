"""
User repository for user-specific database operations.

This module provides database operations for the User model:
authentication lookups, reset-grant storage and lookup, admin filtering
and statistics.
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from models.enums import UserRole, UserStatus
from models.user import User
from repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """
    Repository for User model operations.

    Extends BaseRepository with user-specific queries:
    - Email and provider-id lookups (for authentication)
    - Reset-token hash lookup and raw grant updates (password reset)
    - Filtering, pagination and grouped counts (admin views)
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize UserRepository.

        Args:
            session: Async database session
        """
        super().__init__(User, session)

    async def get_by_email(self, email: str) -> User | None:
        """
        Get user by email address.

        The address is normalized the same way the model stores it.

        Args:
            email: Email address to search for

        Returns:
            User instance or None if not found

        Example:
            user = await user_repo.get_by_email("john@example.com")
            if user is None:
                raise InvalidCredentialsError()
        """
        result = await self.session.execute(
            select(User).where(User.email == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def get_by_email_or_provider_id(
        self, email: str, provider_id: str
    ) -> User | None:
        """
        Find the account an OAuth identity belongs to.

        Matches either the (normalized) email or the external subject id.
        When both match different rows, the provider-id match wins.

        Args:
            email: Email reported by the provider
            provider_id: External subject id

        Returns:
            User instance or None if neither matches
        """
        result = await self.session.execute(
            select(User).where(
                or_(
                    User.email == email.strip().lower(),
                    User.provider_id == provider_id,
                )
            )
        )
        users = list(result.scalars().all())
        if not users:
            return None
        for user in users:
            if user.provider_id == provider_id:
                return user
        return users[0]

    async def get_by_reset_token_hash(
        self, token_hash: str, now: datetime
    ) -> User | None:
        """
        Find the user holding a live reset grant.

        Args:
            token_hash: SHA-256 of the presented token
            now: Current instant; the grant must expire strictly after it

        Returns:
            User instance or None (unknown and expired are not distinguished)
        """
        result = await self.session.execute(
            select(User).where(
                User.password_reset_token_hash == token_hash,
                User.password_reset_expires_at > now,
            )
        )
        return result.scalar_one_or_none()

    async def email_exists(
        self, email: str, exclude_user_id: uuid.UUID | None = None
    ) -> bool:
        """
        Check whether an email is taken.

        Args:
            email: Email address to check
            exclude_user_id: User to ignore (for updates of that user)

        Returns:
            True if another user has the email
        """
        query = select(User.id).where(User.email == email.strip().lower())
        if exclude_user_id is not None:
            query = query.where(User.id != exclude_user_id)
        result = await self.session.execute(query.limit(1))
        return result.first() is not None

    async def set_reset_grant(
        self,
        user_id: uuid.UUID,
        token_hash: str | None,
        expires_at: datetime | None,
    ) -> None:
        """
        Store (or clear) a reset grant with a direct UPDATE.

        Bypasses model validators, so rows that would fail validation
        elsewhere can still receive a grant.

        Args:
            user_id: Target user
            token_hash: SHA-256 of the reset token, or None to clear
            expires_at: Grant expiry, or None to clear
        """
        await self.session.execute(
            update(User)
            .where(User.id == user_id)
            .values(
                password_reset_token_hash=token_hash,
                password_reset_expires_at=expires_at,
            )
            .execution_options(synchronize_session="fetch")
        )

    # -------------------------------------------------------------------------
    # Admin queries
    # -------------------------------------------------------------------------

    def _filtered(self, query: Any, role: UserRole | None, status: UserStatus | None) -> Any:
        if role is not None:
            query = query.where(User.role == role)
        if status is not None:
            query = query.where(User.status == status)
        return query

    async def filter_users(
        self,
        role: UserRole | None = None,
        status: UserStatus | None = None,
        offset: int = 0,
        limit: int = 10,
    ) -> list[User]:
        """
        Filter users with pagination, newest first.

        Args:
            role: Only users with this role
            status: Only users with this status
            offset: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            List of User instances matching the criteria
        """
        query = self._filtered(select(User), role, status)
        query = query.order_by(User.created_at.desc(), User.id).offset(offset).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count_filtered(
        self,
        role: UserRole | None = None,
        status: UserStatus | None = None,
    ) -> int:
        """Count users matching the same filters as filter_users."""
        query = self._filtered(select(func.count()).select_from(User), role, status)
        result = await self.session.execute(query)
        return result.scalar_one()

    async def count_grouped(self, column: Any) -> dict[str, int]:
        """
        Count users per distinct value of a column.

        Args:
            column: User column (e.g. User.role)

        Returns:
            Mapping of value to count; enum values are returned as strings
        """
        result = await self.session.execute(
            select(column, func.count()).group_by(column)
        )
        counts: dict[str, int] = {}
        for value, count in result.all():
            key = value.value if hasattr(value, "value") else str(value)
            counts[key] = count
        return counts
