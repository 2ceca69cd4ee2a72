"""
Tests for reset-grant issuing and the default reset-token sink.
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import patch

import pytest

from core.security import hash_reset_token
from models import User
from services.password_reset import LoggingResetTokenSink, PasswordResetIssuer

NOW = datetime(2026, 3, 1, 9, 30, tzinfo=UTC)


@pytest.fixture
def issuer(db_session, test_settings) -> PasswordResetIssuer:
    return PasswordResetIssuer(db_session, test_settings)


class TestPasswordResetIssuer:
    @pytest.mark.asyncio
    async def test_issue_stores_only_the_hash(self, issuer, db_session, test_user):
        user = await db_session.get(User, test_user.id)

        grant = await issuer.issue(user, NOW)
        await db_session.commit()
        await db_session.refresh(user)

        assert grant.expires_at == NOW + timedelta(minutes=60)
        assert user.password_reset_token_hash == hash_reset_token(grant.plain_token)
        assert user.password_reset_expires_at == grant.expires_at

    @pytest.mark.asyncio
    async def test_verify_live_grant(self, issuer, db_session, test_user):
        user = await db_session.get(User, test_user.id)
        grant = await issuer.issue(user, NOW)
        await db_session.commit()

        found = await issuer.verify(grant.plain_token, NOW + timedelta(minutes=59))
        expired = await issuer.verify(grant.plain_token, NOW + timedelta(minutes=60))
        unknown = await issuer.verify("not-a-token", NOW)

        assert found is not None and found.id == test_user.id
        assert expired is None
        assert unknown is None

    @pytest.mark.asyncio
    async def test_consume_clears_grant_and_sessions(self, issuer, db_session, test_user):
        user = await db_session.get(User, test_user.id)
        user.refresh_tokens = ["t1", "t2"]
        await issuer.issue(user, NOW)

        issuer.consume(user, "$argon2id$new", NOW)

        assert user.password_hash == "$argon2id$new"
        assert user.password_reset_token_hash is None
        assert user.password_reset_expires_at is None
        assert user.refresh_tokens == []
        assert user.password_changed_at == NOW


class TestLoggingResetTokenSink:
    def test_build_link(self):
        sink = LoggingResetTokenSink("https://app.example.com/")

        assert sink.build_link("abc123") == "https://app.example.com/reset-password?token=abc123"

    @pytest.mark.asyncio
    async def test_send_logs_link_only_at_debug(self, test_user):
        sink = LoggingResetTokenSink("https://app.example.com")

        with patch("services.password_reset.logger") as mock_logger:
            await sink.send(test_user, "secret-token", NOW)

        assert "secret-token" not in mock_logger.info.call_args.args[0]
        assert "token=secret-token" in mock_logger.debug.call_args.args[0]
