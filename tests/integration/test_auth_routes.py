"""
Integration tests for the authentication endpoints.
"""

import pytest

from models import UserStatus
from services.google import GoogleProfile

DEFAULT_PASSWORD = "TestPass123!"
NEW_PASSWORD = "N3wPassw0rd!"


def _auth_header(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class TestRegister:
    @pytest.mark.asyncio
    async def test_register_success(self, async_client):
        response = await async_client.post(
            "/api/auth/register",
            json={"email": "New.User@Example.com", "password": DEFAULT_PASSWORD, "name": "New User"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Registration successful"
        user = body["data"]["user"]
        assert user["email"] == "new.user@example.com"
        assert user["role"] == "USER"
        assert user["provider"] == "LOCAL"
        assert "passwordHash" not in user
        assert "refreshTokens" not in user
        assert body["data"]["accessToken"]
        assert {"access_token", "refresh_token"} <= set(response.cookies.keys())

    @pytest.mark.asyncio
    async def test_register_duplicate_email(self, async_client, test_user):
        response = await async_client.post(
            "/api/auth/register",
            json={"email": test_user.email.upper(), "password": DEFAULT_PASSWORD, "name": "Dup"},
        )

        assert response.status_code == 409
        assert response.json()["errorCode"] == "EMAIL_EXISTS"

    @pytest.mark.asyncio
    async def test_register_weak_password(self, async_client):
        response = await async_client.post(
            "/api/auth/register",
            json={"email": "weak@example.com", "password": "password", "name": "Weak"},
        )

        assert response.status_code == 400
        assert response.json()["errorCode"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_register_rejects_unknown_fields(self, async_client):
        response = await async_client.post(
            "/api/auth/register",
            json={
                "email": "sneaky@example.com",
                "password": DEFAULT_PASSWORD,
                "name": "Sneaky",
                "role": "SUPER_ADMIN",
            },
        )

        assert response.status_code == 400
        assert response.json()["errorCode"] == "STRICT_MODE_ERROR"


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_success(self, async_client, test_user):
        response = await async_client.post(
            "/api/auth/login", json={"email": test_user.email, "password": DEFAULT_PASSWORD}
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["user"]["id"] == str(test_user.id)
        assert data["user"]["lastLoginAt"] is not None

    @pytest.mark.asyncio
    async def test_wrong_password(self, async_client, test_user):
        response = await async_client.post(
            "/api/auth/login", json={"email": test_user.email, "password": "Wrong123!"}
        )

        assert response.status_code == 401
        assert response.json()["errorCode"] == "INVALID_CREDENTIALS"

    @pytest.mark.asyncio
    async def test_unknown_email_same_answer(self, async_client):
        response = await async_client.post(
            "/api/auth/login", json={"email": "ghost@example.com", "password": "Wrong123!"}
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_lockout_after_repeated_failures(self, async_client, test_user, test_settings):
        for _ in range(test_settings.max_login_attempts):
            await async_client.post(
                "/api/auth/login", json={"email": test_user.email, "password": "Wrong123!"}
            )

        response = await async_client.post(
            "/api/auth/login", json={"email": test_user.email, "password": DEFAULT_PASSWORD}
        )

        assert response.status_code == 423
        body = response.json()
        assert body["errorCode"] == "ACCOUNT_LOCKED"
        assert body["additionalData"]["remainingMinutes"] >= 1


class TestRefreshToken:
    @pytest.mark.asyncio
    async def test_refresh_with_body(self, async_client, test_user):
        login = await async_client.post(
            "/api/auth/login", json={"email": test_user.email, "password": DEFAULT_PASSWORD}
        )
        refresh_token = login.cookies["refresh_token"]
        async_client.cookies.clear()

        response = await async_client.post(
            "/api/auth/refresh-token", json={"refreshToken": refresh_token}
        )

        assert response.status_code == 200
        assert response.json()["data"]["accessToken"]
        assert response.cookies["refresh_token"] != refresh_token

    @pytest.mark.asyncio
    async def test_refresh_with_cookie(self, async_client, test_user):
        login = await async_client.post(
            "/api/auth/login", json={"email": test_user.email, "password": DEFAULT_PASSWORD}
        )
        async_client.cookies.clear()
        async_client.cookies.set("refresh_token", login.cookies["refresh_token"])

        response = await async_client.post("/api/auth/refresh-token")

        assert response.status_code == 200
        assert response.json()["message"] == "Token refreshed successfully"

    @pytest.mark.asyncio
    async def test_missing_refresh_token(self, async_client):
        async_client.cookies.clear()

        response = await async_client.post("/api/auth/refresh-token")

        assert response.status_code == 401
        assert response.json()["errorCode"] == "NO_REFRESH_TOKEN"

    @pytest.mark.asyncio
    async def test_reused_token_revokes_everything(self, async_client, test_user):
        login = await async_client.post(
            "/api/auth/login", json={"email": test_user.email, "password": DEFAULT_PASSWORD}
        )
        old_token = login.cookies["refresh_token"]
        async_client.cookies.clear()

        rotated = await async_client.post(
            "/api/auth/refresh-token", json={"refreshToken": old_token}
        )
        new_token = rotated.cookies["refresh_token"]
        async_client.cookies.clear()

        reuse = await async_client.post(
            "/api/auth/refresh-token", json={"refreshToken": old_token}
        )
        after = await async_client.post(
            "/api/auth/refresh-token", json={"refreshToken": new_token}
        )

        assert reuse.status_code == 401
        assert reuse.json()["errorCode"] == "INVALID_REFRESH_TOKEN"
        assert after.status_code == 401

    @pytest.mark.asyncio
    async def test_access_token_is_not_a_refresh_token(self, async_client, user_token):
        async_client.cookies.clear()

        response = await async_client.post(
            "/api/auth/refresh-token", json={"refreshToken": user_token}
        )

        assert response.status_code == 401


class TestCurrentUser:
    @pytest.mark.asyncio
    async def test_me_with_bearer_header(self, async_client, test_user, user_token):
        async_client.cookies.clear()

        response = await async_client.get("/api/auth/me", headers=_auth_header(user_token))

        assert response.status_code == 200
        assert response.json()["data"]["email"] == test_user.email

    @pytest.mark.asyncio
    async def test_me_with_cookie(self, async_client, test_user, user_token):
        async_client.cookies.clear()
        async_client.cookies.set("access_token", user_token)

        response = await async_client.get("/api/auth/me")

        assert response.status_code == 200
        assert response.json()["data"]["id"] == str(test_user.id)

    @pytest.mark.asyncio
    async def test_me_without_token(self, async_client):
        async_client.cookies.clear()

        response = await async_client.get("/api/auth/me")

        assert response.status_code == 401
        assert response.json()["errorCode"] == "NO_TOKEN"

    @pytest.mark.asyncio
    async def test_me_with_invalid_token(self, async_client):
        async_client.cookies.clear()

        response = await async_client.get("/api/auth/me", headers=_auth_header("not.a.jwt"))

        assert response.status_code == 401
        assert response.json()["errorCode"] == "INVALID_TOKEN"

    @pytest.mark.asyncio
    async def test_blocked_user_is_refused(self, async_client, test_user, user_token, admin_token):
        await async_client.patch(
            f"/api/v1/users/{test_user.id}/status",
            json={"status": UserStatus.BLOCKED.value},
            headers=_auth_header(admin_token),
        )
        async_client.cookies.clear()

        response = await async_client.get("/api/auth/me", headers=_auth_header(user_token))

        assert response.status_code == 403
        assert response.json()["errorCode"] == "ACCOUNT_INACTIVE"


class TestLogout:
    @pytest.mark.asyncio
    async def test_logout_clears_cookies_and_revokes_token(self, async_client, test_user):
        login = await async_client.post(
            "/api/auth/login", json={"email": test_user.email, "password": DEFAULT_PASSWORD}
        )
        access = login.json()["data"]["accessToken"]
        refresh = login.cookies["refresh_token"]

        response = await async_client.post(
            "/api/auth/logout", json={"refreshToken": refresh}, headers=_auth_header(access)
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Logged out successfully"
        set_cookies = " ".join(response.headers.get_list("set-cookie")).lower()
        assert "access_token=" in set_cookies and "max-age=0" in set_cookies

        async_client.cookies.clear()
        again = await async_client.post(
            "/api/auth/refresh-token", json={"refreshToken": refresh}
        )
        assert again.status_code == 401

    @pytest.mark.asyncio
    async def test_logout_requires_authentication(self, async_client):
        async_client.cookies.clear()

        response = await async_client.post("/api/auth/logout")

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_logout_all_devices(self, async_client, test_user):
        first = await async_client.post(
            "/api/auth/login", json={"email": test_user.email, "password": DEFAULT_PASSWORD}
        )
        second = await async_client.post(
            "/api/auth/login", json={"email": test_user.email, "password": DEFAULT_PASSWORD}
        )
        access = second.json()["data"]["accessToken"]

        response = await async_client.post("/api/auth/logout-all", headers=_auth_header(access))

        assert response.status_code == 200
        async_client.cookies.clear()
        for login_response in (first, second):
            refreshed = await async_client.post(
                "/api/auth/refresh-token",
                json={"refreshToken": login_response.cookies["refresh_token"]},
            )
            assert refreshed.status_code == 401


class TestChangePassword:
    @pytest.mark.asyncio
    async def test_change_password(self, async_client, test_user, user_token):
        response = await async_client.post(
            "/api/auth/change-password",
            json={
                "currentPassword": DEFAULT_PASSWORD,
                "newPassword": NEW_PASSWORD,
                "confirmPassword": NEW_PASSWORD,
            },
            headers=_auth_header(user_token),
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Password changed successfully. Please login again."

        old = await async_client.post(
            "/api/auth/login", json={"email": test_user.email, "password": DEFAULT_PASSWORD}
        )
        new = await async_client.post(
            "/api/auth/login", json={"email": test_user.email, "password": NEW_PASSWORD}
        )
        assert old.status_code == 401
        assert new.status_code == 200

    @pytest.mark.asyncio
    async def test_wrong_current_password(self, async_client, user_token):
        response = await async_client.post(
            "/api/auth/change-password",
            json={
                "currentPassword": "Wrong123!",
                "newPassword": NEW_PASSWORD,
                "confirmPassword": NEW_PASSWORD,
            },
            headers=_auth_header(user_token),
        )

        assert response.status_code == 401
        assert response.json()["errorCode"] == "INVALID_PASSWORD"

    @pytest.mark.asyncio
    async def test_confirmation_mismatch(self, async_client, user_token):
        response = await async_client.post(
            "/api/auth/change-password",
            json={
                "currentPassword": DEFAULT_PASSWORD,
                "newPassword": NEW_PASSWORD,
                "confirmPassword": "Different123!",
            },
            headers=_auth_header(user_token),
        )

        assert response.status_code == 400


class TestPasswordReset:
    @pytest.mark.asyncio
    async def test_forgot_password_answers_generically(self, async_client, test_user, reset_sink):
        known = await async_client.post(
            "/api/auth/forgot-password", json={"email": test_user.email}
        )
        unknown = await async_client.post(
            "/api/auth/forgot-password", json={"email": "ghost@example.com"}
        )

        assert known.status_code == unknown.status_code == 200
        assert known.json() == unknown.json()
        assert len(reset_sink.sent) == 1

    @pytest.mark.asyncio
    async def test_full_reset_flow(self, async_client, test_user, reset_sink):
        await async_client.post("/api/auth/forgot-password", json={"email": test_user.email})
        token = reset_sink.last_token

        response = await async_client.post(
            "/api/auth/reset-password",
            json={"token": token, "newPassword": NEW_PASSWORD, "confirmPassword": NEW_PASSWORD},
        )

        assert response.status_code == 200
        login = await async_client.post(
            "/api/auth/login", json={"email": test_user.email, "password": NEW_PASSWORD}
        )
        assert login.status_code == 200

        replay = await async_client.post(
            "/api/auth/reset-password",
            json={"token": token, "newPassword": "An0ther!Pass", "confirmPassword": "An0ther!Pass"},
        )
        assert replay.status_code == 400
        assert replay.json()["errorCode"] == "INVALID_OR_EXPIRED_TOKEN"

    @pytest.mark.asyncio
    async def test_unknown_reset_token(self, async_client):
        response = await async_client.post(
            "/api/auth/reset-password",
            json={"token": "deadbeef", "newPassword": NEW_PASSWORD, "confirmPassword": NEW_PASSWORD},
        )

        assert response.status_code == 400
        assert response.json()["errorCode"] == "INVALID_OR_EXPIRED_TOKEN"


class TestGoogleSignIn:
    @pytest.mark.asyncio
    async def test_first_sign_in_creates_account(self, async_client, identity_verifier):
        identity_verifier.register(
            "google-id-token",
            GoogleProfile(subject="g-123", email="Gina@Example.com", name="Gina"),
        )

        response = await async_client.post("/api/auth/google", json={"idToken": "google-id-token"})

        assert response.status_code == 200
        user = response.json()["data"]["user"]
        assert user["email"] == "gina@example.com"
        assert user["provider"] == "GOOGLE"
        assert user["isEmailVerified"] is True

        again = await async_client.post("/api/auth/google", json={"idToken": "google-id-token"})
        assert again.json()["data"]["user"]["id"] == user["id"]

    @pytest.mark.asyncio
    async def test_local_account_conflict(self, async_client, identity_verifier, test_user):
        identity_verifier.register(
            "google-id-token",
            GoogleProfile(subject="g-456", email=test_user.email, name="Clash"),
        )

        response = await async_client.post("/api/auth/google", json={"idToken": "google-id-token"})

        assert response.status_code == 409
        assert response.json()["errorCode"] == "ACCOUNT_EXISTS"

    @pytest.mark.asyncio
    async def test_rejected_id_token(self, async_client):
        response = await async_client.post("/api/auth/google", json={"idToken": "forged"})

        assert response.status_code == 401
        assert response.json()["errorCode"] == "INVALID_GOOGLE_TOKEN"

    @pytest.mark.asyncio
    async def test_google_account_cannot_use_password_login(self, async_client, identity_verifier):
        identity_verifier.register(
            "google-id-token",
            GoogleProfile(subject="g-789", email="nopass@example.com", name="No Pass"),
        )
        await async_client.post("/api/auth/google", json={"idToken": "google-id-token"})

        response = await async_client.post(
            "/api/auth/login", json={"email": "nopass@example.com", "password": DEFAULT_PASSWORD}
        )

        assert response.status_code == 400
        assert response.json()["errorCode"] == "NO_PASSWORD"
