"""Registration, login, logout and session resolution."""

from __future__ import annotations

from httpx import AsyncClient
from sqlalchemy import delete

from tests.conftest import TEST_PASSWORD, auth_headers, register_via_api
from worldleader.auth.jwt import create_access_token
from worldleader.database import get_session_factory
from worldleader.db.models import User


class TestRegistration:
    async def test_register_returns_token_and_cookie(self, client: AsyncClient, mock_email_service):
        response = await client.post("/api/v1/auth/register", json={
            "email": "Anna@Example.com",
            "username": "anna",
            "password": TEST_PASSWORD,
            "continent": "EUROPE",
            "countryCode": "FR",
        })
        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        assert data["token_type"] == "bearer"
        assert data["user"]["email"] == "anna@example.com"
        assert "auth-token" in response.cookies
        assert "password_hash" not in data["user"]

    async def test_duplicate_email_409(self, client: AsyncClient, mock_email_service):
        await register_via_api(client, "anna", email="anna@example.com")
        response = await client.post("/api/v1/auth/register", json={
            "email": "anna@example.com",
            "username": "someone",
            "password": TEST_PASSWORD,
            "continent": "ASIA",
            "countryCode": "JP",
        })
        assert response.status_code == 409
        assert response.json()["detail"] == "User with this email or username already exists"

    async def test_duplicate_username_409_same_message(self, client: AsyncClient, mock_email_service):
        await register_via_api(client, "anna")
        response = await client.post("/api/v1/auth/register", json={
            "email": "other@example.com",
            "username": "anna",
            "password": TEST_PASSWORD,
            "continent": "EUROPE",
            "countryCode": "FR",
        })
        assert response.status_code == 409
        assert response.json()["detail"] == "User with this email or username already exists"

    async def test_weak_password_400_with_feedback(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/register", json={
            "email": "weak@example.com",
            "username": "weakling",
            "password": "abcdefghij",
            "continent": "EUROPE",
            "countryCode": "FR",
        })
        assert response.status_code == 400
        detail = response.json()["detail"]
        assert "Add at least one uppercase letter" in detail["feedback"]

    async def test_invalid_username_422(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/register", json={
            "email": "x@example.com",
            "username": "no spaces allowed",
            "password": TEST_PASSWORD,
            "continent": "EUROPE",
            "countryCode": "FR",
        })
        assert response.status_code == 422

    async def test_unknown_continent_422(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/register", json={
            "email": "x@example.com",
            "username": "atlantean",
            "password": TEST_PASSWORD,
            "continent": "ATLANTIS",
            "countryCode": "AT",
        })
        assert response.status_code == 422


class TestLogin:
    async def test_login_success(self, client: AsyncClient, registered_user):
        response = await client.post("/api/v1/auth/login", json={
            "email": registered_user["email"],
            "password": TEST_PASSWORD,
        })
        assert response.status_code == 200
        assert response.json()["user"]["id"] == registered_user["user_id"]
        assert "auth-token" in response.cookies

    async def test_wrong_password_and_unknown_email_look_the_same(self, client: AsyncClient, registered_user):
        wrong = await client.post("/api/v1/auth/login", json={
            "email": registered_user["email"],
            "password": "WrongP@ss1",
        })
        unknown = await client.post("/api/v1/auth/login", json={
            "email": "ghost@example.com",
            "password": TEST_PASSWORD,
        })
        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json() == unknown.json() == {"detail": "Invalid email or password"}


class TestSession:
    async def test_bearer_token(self, client: AsyncClient, registered_user):
        response = await client.get("/api/v1/users/me", headers=auth_headers(registered_user["access_token"]))
        assert response.status_code == 200
        assert response.json()["username"] == "alice"

    async def test_cookie_session(self, client: AsyncClient, registered_user):
        client.cookies.set("auth-token", registered_user["access_token"])
        response = await client.get("/api/v1/users/me")
        assert response.status_code == 200

    async def test_no_credentials_401(self, client: AsyncClient):
        assert (await client.get("/api/v1/users/me")).status_code == 401

    async def test_bad_token_401(self, client: AsyncClient):
        response = await client.get("/api/v1/users/me", headers=auth_headers("garbage"))
        assert response.status_code == 401

    async def test_deleted_user_is_unauthenticated(self, client: AsyncClient, registered_user):
        async with get_session_factory()() as db:
            await db.execute(delete(User).where(User.id == registered_user["user_id"]))
            await db.commit()
        response = await client.get("/api/v1/users/me", headers=auth_headers(registered_user["access_token"]))
        assert response.status_code == 401

    async def test_token_for_missing_user_cannot_purchase(self, client: AsyncClient):
        token = create_access_token(999, "ghost@example.com", "ghost")
        response = await client.post("/api/v1/purchase", json={"amountUsd": 5}, headers=auth_headers(token))
        assert response.status_code == 401

    async def test_logout_clears_cookie(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/logout")
        assert response.status_code == 200
        assert 'auth-token=""' in response.headers["set-cookie"] or "Max-Age=0" in response.headers["set-cookie"]
