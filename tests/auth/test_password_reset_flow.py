"""Tests for the password reset flow."""

from __future__ import annotations

import hashlib
from datetime import datetime, timedelta, timezone

from httpx import AsyncClient
from sqlalchemy import update

from tests.conftest import TEST_PASSWORD, fetch_user
from worldleader.auth.service import clear_expired_reset_tokens, create_reset_token, verify_reset_token
from worldleader.database import get_session_factory
from worldleader.db.models import User

NEW_PASSWORD = "NewSecureP@ss2"


async def _request_reset(client: AsyncClient, mock_email_service, email: str) -> str:
    """Trigger forgot-password and pull the raw token out of the emailed link."""
    mock_email_service.send_template.reset_mock()
    response = await client.post("/api/v1/auth/forgot-password", json={"email": email})
    assert response.status_code == 200
    _, kind, context = mock_email_service.send_template.await_args.args
    assert kind == "PASSWORD_RESET"
    return context["reset_url"].split("token=")[1]


class TestForgotPassword:
    async def test_sends_reset_email(self, client: AsyncClient, registered_user, mock_email_service):
        token = await _request_reset(client, mock_email_service, registered_user["email"])
        assert len(token) == 64
        user = await fetch_user(registered_user["user_id"])
        assert user.reset_token == hashlib.sha256(token.encode()).hexdigest()
        assert user.reset_token_expiry is not None

    async def test_unknown_email_same_response_no_email(self, client: AsyncClient, registered_user, mock_email_service):
        known = await client.post("/api/v1/auth/forgot-password", json={"email": registered_user["email"]})
        mock_email_service.send_template.reset_mock()
        unknown = await client.post("/api/v1/auth/forgot-password", json={"email": "ghost@example.com"})
        assert unknown.status_code == known.status_code == 200
        assert unknown.json() == known.json()
        mock_email_service.send_template.assert_not_awaited()

    async def test_request_sweeps_expired_tokens(self, client: AsyncClient, registered_user, mock_email_service):
        await _request_reset(client, mock_email_service, registered_user["email"])
        async with get_session_factory()() as db:
            await db.execute(
                update(User).values(reset_token_expiry=datetime.now(timezone.utc) - timedelta(seconds=1))
            )
            await db.commit()

        response = await client.post("/api/v1/auth/forgot-password", json={"email": "ghost@example.com"})

        assert response.status_code == 200
        user = await fetch_user(registered_user["user_id"])
        assert user.reset_token is None
        assert user.reset_token_expiry is None

    async def test_new_token_replaces_old(self, client: AsyncClient, registered_user, mock_email_service):
        first = await _request_reset(client, mock_email_service, registered_user["email"])
        second = await _request_reset(client, mock_email_service, registered_user["email"])
        assert first != second
        assert (await client.get("/api/v1/auth/reset-password", params={"token": first})).json() == {"valid": False}
        assert (await client.get("/api/v1/auth/reset-password", params={"token": second})).json() == {"valid": True}


class TestResetPassword:
    async def test_reset_then_login_with_new_password(self, client: AsyncClient, registered_user, mock_email_service):
        token = await _request_reset(client, mock_email_service, registered_user["email"])
        response = await client.post("/api/v1/auth/reset-password", json={"token": token, "password": NEW_PASSWORD})
        assert response.status_code == 200

        old_login = await client.post("/api/v1/auth/login", json={
            "email": registered_user["email"], "password": TEST_PASSWORD,
        })
        new_login = await client.post("/api/v1/auth/login", json={
            "email": registered_user["email"], "password": NEW_PASSWORD,
        })
        assert old_login.status_code == 401
        assert new_login.status_code == 200

        user = await fetch_user(registered_user["user_id"])
        assert user.reset_token is None
        assert user.reset_token_expiry is None

    async def test_token_is_single_use(self, client: AsyncClient, registered_user, mock_email_service):
        token = await _request_reset(client, mock_email_service, registered_user["email"])
        first = await client.post("/api/v1/auth/reset-password", json={"token": token, "password": NEW_PASSWORD})
        second = await client.post("/api/v1/auth/reset-password", json={"token": token, "password": "Another@Pass3"})
        assert first.status_code == 200
        assert second.status_code == 400
        assert second.json()["detail"] == "Invalid or expired reset token"

    async def test_expired_token_rejected(self, client: AsyncClient, registered_user, mock_email_service):
        token = await _request_reset(client, mock_email_service, registered_user["email"])
        async with get_session_factory()() as db:
            await db.execute(
                update(User)
                .where(User.id == registered_user["user_id"])
                .values(reset_token_expiry=datetime.now(timezone.utc) - timedelta(minutes=1))
            )
            await db.commit()

        check = await client.get("/api/v1/auth/reset-password", params={"token": token})
        assert check.json() == {"valid": False}
        response = await client.post("/api/v1/auth/reset-password", json={"token": token, "password": NEW_PASSWORD})
        assert response.status_code == 400

    async def test_unknown_token_rejected(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/reset-password", json={
            "token": "definitely_not_a_valid_token",
            "password": NEW_PASSWORD,
        })
        assert response.status_code == 400

    async def test_weak_new_password_rejected(self, client: AsyncClient, registered_user, mock_email_service):
        token = await _request_reset(client, mock_email_service, registered_user["email"])
        response = await client.post("/api/v1/auth/reset-password", json={"token": token, "password": "weak"})
        assert response.status_code == 400
        assert "feedback" in response.json()["detail"]
        # The token survives a rejected attempt
        assert (await client.get("/api/v1/auth/reset-password", params={"token": token})).json() == {"valid": True}


class TestResetTokenService:
    async def test_unknown_email_returns_none(self, db_session):
        assert await create_reset_token(db_session, "nobody@example.com") is None

    async def test_empty_token_invalid(self, db_session):
        assert await verify_reset_token(db_session, "") is None

    async def test_clear_expired_tokens(self, client: AsyncClient, registered_user, mock_email_service):
        await _request_reset(client, mock_email_service, registered_user["email"])
        async with get_session_factory()() as db:
            assert await clear_expired_reset_tokens(db) == 0
            await db.execute(
                update(User).values(reset_token_expiry=datetime.now(timezone.utc) - timedelta(seconds=1))
            )
            await db.commit()
            assert await clear_expired_reset_tokens(db) == 1
        assert (await fetch_user(registered_user["user_id"])).reset_token is None
