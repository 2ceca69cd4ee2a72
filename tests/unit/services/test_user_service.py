"""
Tests for UserService against the in-memory database.
"""

import uuid

import pytest

from core.exceptions import (
    CannotBlockSuperAdminError,
    CannotDeleteSuperAdminError,
    EmailExistsError,
    UserNotFoundError,
)
from models import AuthProvider, User, UserRole, UserStatus
from services.user_service import UserService


@pytest.fixture
def user_service(db_session) -> UserService:
    return UserService(db_session)


class TestGetAndUpdate:
    @pytest.mark.asyncio
    async def test_get_user(self, user_service, test_user):
        user = await user_service.get_user(test_user.id)

        assert user.email == test_user.email

    @pytest.mark.asyncio
    async def test_get_unknown_user(self, user_service):
        with pytest.raises(UserNotFoundError):
            await user_service.get_user(uuid.uuid4())

    @pytest.mark.asyncio
    async def test_update_profile(self, user_service, test_user):
        user = await user_service.update_profile(
            test_user.id, name="  Renamed  ", avatar="https://img.example.com/a.png"
        )

        assert user.name == "Renamed"
        assert user.avatar == "https://img.example.com/a.png"
        assert user.email == test_user.email

    @pytest.mark.asyncio
    async def test_none_fields_are_unchanged(self, user_service, test_user):
        user = await user_service.update_profile(test_user.id)

        assert user.name == test_user.name

    @pytest.mark.asyncio
    async def test_admin_update_email(self, user_service, test_user):
        user = await user_service.update_user(test_user.id, email="Moved@Example.com")

        assert user.email == "moved@example.com"

    @pytest.mark.asyncio
    async def test_admin_update_email_taken(self, user_service, test_user, admin_user):
        with pytest.raises(EmailExistsError):
            await user_service.update_user(test_user.id, email=admin_user.email.upper())


class TestListUsers:
    @pytest.mark.asyncio
    async def test_pagination_newest_first(self, user_service, make_user):
        created = [await make_user(email=f"user{i}@example.com") for i in range(5)]

        page = await user_service.list_users(page=1, limit=2)

        assert page.total == 5
        assert page.total_pages == 3
        assert [u.id for u in page.users] == [created[4].id, created[3].id]

        last = await user_service.list_users(page=3, limit=2)
        assert [u.id for u in last.users] == [created[0].id]

    @pytest.mark.asyncio
    async def test_filters(self, user_service, make_user):
        await make_user(email="a@example.com")
        await make_user(email="b@example.com", role=UserRole.ADMIN)
        await make_user(email="c@example.com", role=UserRole.ADMIN, status=UserStatus.BLOCKED)

        admins = await user_service.list_users(role=UserRole.ADMIN)
        active_admins = await user_service.list_users(role=UserRole.ADMIN, status=UserStatus.ACTIVE)

        assert admins.total == 2
        assert active_admins.total == 1
        assert active_admins.users[0].email == "b@example.com"

    @pytest.mark.asyncio
    async def test_empty_page(self, user_service):
        page = await user_service.list_users()

        assert page.users == []
        assert page.total == 0
        assert page.total_pages == 0


class TestAdminActions:
    @pytest.mark.asyncio
    async def test_delete_user(self, user_service, db_session, test_user):
        await user_service.delete_user(test_user.id)

        assert await db_session.get(User, test_user.id) is None

    @pytest.mark.asyncio
    async def test_super_admin_cannot_be_deleted(self, user_service, super_admin_user):
        with pytest.raises(CannotDeleteSuperAdminError) as exc_info:
            await user_service.delete_user(super_admin_user.id)

        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_change_status(self, user_service, test_user):
        user = await user_service.change_user_status(test_user.id, UserStatus.BLOCKED)

        assert user.status == UserStatus.BLOCKED

    @pytest.mark.asyncio
    async def test_super_admin_cannot_be_blocked(self, user_service, super_admin_user):
        with pytest.raises(CannotBlockSuperAdminError):
            await user_service.change_user_status(super_admin_user.id, UserStatus.BLOCKED)

    @pytest.mark.asyncio
    async def test_super_admin_can_be_deactivated(self, user_service, super_admin_user):
        user = await user_service.change_user_status(super_admin_user.id, UserStatus.INACTIVE)

        assert user.status == UserStatus.INACTIVE

    @pytest.mark.asyncio
    async def test_change_role(self, user_service, test_user):
        user = await user_service.change_user_role(test_user.id, UserRole.ADMIN)

        assert user.role == UserRole.ADMIN


class TestStats:
    @pytest.mark.asyncio
    async def test_user_stats(self, user_service, make_user):
        await make_user(email="a@example.com")
        await make_user(email="b@example.com", status=UserStatus.BLOCKED)
        await make_user(email="c@example.com", role=UserRole.ADMIN)
        await make_user(
            email="d@example.com", password=None, provider=AuthProvider.GOOGLE, provider_id="sub-d"
        )

        stats = await user_service.get_user_stats()

        assert stats.total_users == 4
        assert stats.active_users == 3
        assert stats.blocked_users == 1
        assert stats.users_by_role == {"USER": 3, "ADMIN": 1}
        assert stats.users_by_provider == {"LOCAL": 3, "GOOGLE": 1}
