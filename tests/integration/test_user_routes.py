"""
Integration tests for the user management endpoints.
"""

import uuid

import pytest

USERS_URL = "/api/v1/users"


def _auth_header(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class TestSelfService:
    @pytest.mark.asyncio
    async def test_get_my_profile(self, async_client, test_user, user_token):
        response = await async_client.get(f"{USERS_URL}/me", headers=_auth_header(user_token))

        assert response.status_code == 200
        assert response.json()["data"]["email"] == test_user.email

    @pytest.mark.asyncio
    async def test_update_my_profile(self, async_client, user_token):
        response = await async_client.patch(
            f"{USERS_URL}/me",
            json={"name": "Renamed User", "avatar": "https://img.example.com/me.png"},
            headers=_auth_header(user_token),
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["name"] == "Renamed User"
        assert data["avatar"] == "https://img.example.com/me.png"

    @pytest.mark.asyncio
    async def test_cannot_change_own_role(self, async_client, user_token):
        response = await async_client.patch(
            f"{USERS_URL}/me", json={"role": "ADMIN"}, headers=_auth_header(user_token)
        )

        assert response.status_code == 400
        assert response.json()["errorCode"] == "STRICT_MODE_ERROR"


class TestRoleGuards:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "method, path",
        [
            ("GET", ""),
            ("GET", "/stats"),
            ("GET", f"/{uuid.uuid4()}"),
            ("DELETE", f"/{uuid.uuid4()}"),
        ],
    )
    async def test_regular_user_forbidden(self, async_client, user_token, method, path):
        response = await async_client.request(
            method, f"{USERS_URL}{path}", headers=_auth_header(user_token)
        )

        assert response.status_code == 403
        assert response.json()["errorCode"] == "FORBIDDEN"

    @pytest.mark.asyncio
    async def test_admin_cannot_change_roles(self, async_client, test_user, admin_token):
        response = await async_client.patch(
            f"{USERS_URL}/{test_user.id}/role",
            json={"role": "ADMIN"},
            headers=_auth_header(admin_token),
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_anonymous_rejected(self, async_client):
        async_client.cookies.clear()

        response = await async_client.get(USERS_URL)

        assert response.status_code == 401
        assert response.json()["errorCode"] == "NO_TOKEN"


class TestAdministration:
    @pytest.mark.asyncio
    async def test_list_users(self, async_client, test_user, admin_token):
        response = await async_client.get(
            USERS_URL, params={"page": 1, "limit": 1}, headers=_auth_header(admin_token)
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["total"] == 2
        assert data["page"] == 1
        assert data["totalPages"] == 2
        assert len(data["users"]) == 1

    @pytest.mark.asyncio
    async def test_list_users_filtered(self, async_client, test_user, admin_token):
        response = await async_client.get(
            USERS_URL, params={"role": "ADMIN"}, headers=_auth_header(admin_token)
        )

        data = response.json()["data"]
        assert data["total"] == 1
        assert data["users"][0]["role"] == "ADMIN"

    @pytest.mark.asyncio
    async def test_list_users_invalid_limit(self, async_client, admin_token):
        response = await async_client.get(
            USERS_URL, params={"limit": 500}, headers=_auth_header(admin_token)
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_stats(self, async_client, test_user, admin_token):
        response = await async_client.get(f"{USERS_URL}/stats", headers=_auth_header(admin_token))

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["totalUsers"] == 2
        assert data["activeUsers"] == 2
        assert data["blockedUsers"] == 0
        assert data["usersByRole"] == {"USER": 1, "ADMIN": 1}
        assert data["usersByProvider"] == {"LOCAL": 2}

    @pytest.mark.asyncio
    async def test_get_user(self, async_client, test_user, admin_token):
        response = await async_client.get(
            f"{USERS_URL}/{test_user.id}", headers=_auth_header(admin_token)
        )

        assert response.status_code == 200
        assert response.json()["data"]["id"] == str(test_user.id)

    @pytest.mark.asyncio
    async def test_get_unknown_user(self, async_client, admin_token):
        response = await async_client.get(
            f"{USERS_URL}/{uuid.uuid4()}", headers=_auth_header(admin_token)
        )

        assert response.status_code == 404
        assert response.json()["errorCode"] == "USER_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_malformed_user_id(self, async_client, admin_token):
        response = await async_client.get(
            f"{USERS_URL}/not-a-uuid", headers=_auth_header(admin_token)
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_update_user_email(self, async_client, test_user, admin_token):
        response = await async_client.patch(
            f"{USERS_URL}/{test_user.id}",
            json={"email": "Changed@Example.com"},
            headers=_auth_header(admin_token),
        )

        assert response.status_code == 200
        assert response.json()["data"]["email"] == "changed@example.com"

    @pytest.mark.asyncio
    async def test_update_user_email_taken(self, async_client, test_user, admin_user, admin_token):
        response = await async_client.patch(
            f"{USERS_URL}/{test_user.id}",
            json={"email": admin_user.email},
            headers=_auth_header(admin_token),
        )

        assert response.status_code == 409
        assert response.json()["errorCode"] == "EMAIL_EXISTS"

    @pytest.mark.asyncio
    async def test_delete_user(self, async_client, test_user, admin_token):
        response = await async_client.delete(
            f"{USERS_URL}/{test_user.id}", headers=_auth_header(admin_token)
        )
        lookup = await async_client.get(
            f"{USERS_URL}/{test_user.id}", headers=_auth_header(admin_token)
        )

        assert response.status_code == 200
        assert response.json()["message"] == "User deleted successfully"
        assert lookup.status_code == 404

    @pytest.mark.asyncio
    async def test_block_user(self, async_client, test_user, admin_token):
        response = await async_client.patch(
            f"{USERS_URL}/{test_user.id}/status",
            json={"status": "BLOCKED"},
            headers=_auth_header(admin_token),
        )

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "BLOCKED"

    @pytest.mark.asyncio
    async def test_invalid_status_value(self, async_client, test_user, admin_token):
        response = await async_client.patch(
            f"{USERS_URL}/{test_user.id}/status",
            json={"status": "SUSPENDED"},
            headers=_auth_header(admin_token),
        )

        assert response.status_code == 400
        assert response.json()["errorCode"] == "VALIDATION_ERROR"


class TestSuperAdminProtections:
    @pytest.mark.asyncio
    async def test_super_admin_cannot_be_deleted(self, async_client, super_admin_user, admin_token):
        response = await async_client.delete(
            f"{USERS_URL}/{super_admin_user.id}", headers=_auth_header(admin_token)
        )

        assert response.status_code == 403
        assert response.json()["errorCode"] == "CANNOT_DELETE_SUPER_ADMIN"

    @pytest.mark.asyncio
    async def test_super_admin_cannot_be_blocked(self, async_client, super_admin_user, admin_token):
        response = await async_client.patch(
            f"{USERS_URL}/{super_admin_user.id}/status",
            json={"status": "BLOCKED"},
            headers=_auth_header(admin_token),
        )

        assert response.status_code == 403
        assert response.json()["errorCode"] == "CANNOT_BLOCK_SUPER_ADMIN"

    @pytest.mark.asyncio
    async def test_super_admin_changes_role(self, async_client, test_user, super_admin_token):
        response = await async_client.patch(
            f"{USERS_URL}/{test_user.id}/role",
            json={"role": "ADMIN"},
            headers=_auth_header(super_admin_token),
        )

        assert response.status_code == 200
        assert response.json()["data"]["role"] == "ADMIN"
