"""
Pytest configuration and fixtures for Sentinel Auth tests.

This module provides:
- Database setup and teardown (in-memory SQLite)
- Application and HTTP client fixtures
- User factory
- Test doubles for reset-token delivery and Google verification
"""

# Set environment variables BEFORE importing anything from the application
import os

os.environ["JWT_ACCESS_SECRET"] = "test-access-secret-0123456789abcdef0123"
os.environ["JWT_REFRESH_SECRET"] = "test-refresh-secret-0123456789abcdef012"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "development"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["LOG_FILE_ENABLED"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"
# Cheap hashing keeps the suite fast
os.environ["ARGON2_TIME_COST"] = "1"
os.environ["ARGON2_MEMORY_COST"] = "8192"
os.environ["ARGON2_PARALLELISM"] = "1"
os.environ["GOOGLE_CLIENT_ID"] = "test-client-id.apps.googleusercontent.com"

import uuid
from datetime import datetime
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from core.config import Settings, get_settings
from core.database import create_sessionmaker
from core.exceptions import InvalidGoogleTokenError
from core.security import CredentialHasher
from main import create_app
from models import AuthProvider, Base, User, UserRole, UserStatus
from services.google import GoogleProfile

DEFAULT_PASSWORD = "TestPass123!"


# ============================================================================
# Test doubles
# ============================================================================
class CapturingResetSink:
    """Reset-token sink that remembers what it was asked to deliver."""

    def __init__(self):
        self.sent: list[tuple[str, str, datetime]] = []

    async def send(self, user: User, token: str, expires_at: datetime) -> None:
        self.sent.append((user.email, token, expires_at))

    @property
    def last_token(self) -> str | None:
        return self.sent[-1][1] if self.sent else None


class FakeIdentityVerifier:
    """Maps ID tokens to profiles; anything else is rejected."""

    def __init__(self):
        self.profiles: dict[str, GoogleProfile] = {}

    def register(self, id_token: str, profile: GoogleProfile) -> None:
        self.profiles[id_token] = profile

    async def verify(self, id_token: str) -> GoogleProfile:
        try:
            return self.profiles[id_token]
        except KeyError:
            raise InvalidGoogleTokenError()


# ============================================================================
# Settings & Database Fixtures
# ============================================================================
@pytest.fixture
def test_settings() -> Settings:
    return get_settings()


@pytest_asyncio.fixture
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """
    Create a fresh in-memory database per test.

    StaticPool keeps a single connection so every session sees the same
    in-memory database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_sessionmaker(test_engine)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ============================================================================
# Application Fixtures
# ============================================================================
@pytest.fixture
def reset_sink() -> CapturingResetSink:
    return CapturingResetSink()


@pytest.fixture
def identity_verifier() -> FakeIdentityVerifier:
    return FakeIdentityVerifier()


@pytest.fixture
def app(
    test_settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    reset_sink: CapturingResetSink,
    identity_verifier: FakeIdentityVerifier,
) -> FastAPI:
    """
    Application wired to the test database and test doubles.

    ASGITransport does not run the lifespan, so the sessionmaker is set here.
    """
    application = create_app(test_settings)
    application.state.sessionmaker = session_factory
    application.state.reset_token_sink = reset_sink
    application.state.identity_verifier = identity_verifier
    return application


@pytest_asyncio.fixture
async def async_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ============================================================================
# User Fixtures
# ============================================================================
@pytest.fixture
def make_user(session_factory: async_sessionmaker[AsyncSession], test_settings: Settings):
    """
    Factory creating users directly in the database.

    Usage:
        user = await make_user(email="a@example.com", role=UserRole.ADMIN)
    """
    hasher = CredentialHasher.from_settings(test_settings)

    async def _make_user(
        email: str = "testuser@example.com",
        password: str | None = DEFAULT_PASSWORD,
        name: str = "Test User",
        role: UserRole = UserRole.USER,
        status: UserStatus = UserStatus.ACTIVE,
        provider: AuthProvider = AuthProvider.LOCAL,
        provider_id: str | None = None,
    ) -> User:
        async with session_factory() as session:
            user = User(
                id=uuid.uuid4(),
                email=email,
                name=name,
                password_hash=hasher.hash(password) if password else None,
                provider=provider,
                provider_id=provider_id,
                role=role,
                status=status,
                is_email_verified=provider == AuthProvider.GOOGLE,
                login_attempts=0,
                refresh_tokens=[],
            )
            session.add(user)
            await session.commit()
            return user

    return _make_user


@pytest_asyncio.fixture
async def test_user(make_user) -> User:
    return await make_user()


@pytest_asyncio.fixture
async def admin_user(make_user) -> User:
    return await make_user(email="admin@example.com", name="Admin User", role=UserRole.ADMIN)


@pytest_asyncio.fixture
async def super_admin_user(make_user) -> User:
    return await make_user(
        email="root@example.com", name="Root User", role=UserRole.SUPER_ADMIN
    )


@pytest.fixture
def login(async_client: AsyncClient):
    """
    Log in through the API and return the response data.

    Usage:
        data = await login("a@example.com")
        data["accessToken"]
    """

    async def _login(email: str, password: str = DEFAULT_PASSWORD) -> dict:
        response = await async_client.post(
            "/api/auth/login", json={"email": email, "password": password}
        )
        assert response.status_code == 200, response.text
        return response.json()["data"]

    return _login


@pytest_asyncio.fixture
async def user_token(login, test_user: User) -> str:
    return (await login(test_user.email))["accessToken"]


@pytest_asyncio.fixture
async def admin_token(login, admin_user: User) -> str:
    return (await login(admin_user.email))["accessToken"]


@pytest_asyncio.fixture
async def super_admin_token(login, super_admin_user: User) -> str:
    return (await login(super_admin_user.email))["accessToken"]
