"""
Portal Backend - Auth API Tests
=================================

What:  Registration, login, logout and password reset over HTTP.
"""

import pytest
from sqlalchemy import select

from portal.database import async_session_factory
from portal.models.verification_token import VerificationToken
from portal.services.auth_service import RESET_MESSAGE

DEFAULT_PASSWORD = "Str0ng!Secret"


class TestRegister:

    @pytest.mark.asyncio
    async def test_register_success(self, test_client):
        response = await test_client.post(
            "/api/auth/register",
            json={"email": "New.Person@Example.com", "password": DEFAULT_PASSWORD, "name": " Newbie "},
        )
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "User created successfully"
        assert body["data"]["user"]["email"] == "new.person@example.com"
        assert body["data"]["user"]["name"] == "Newbie"
        assert body["data"]["user"]["role"] == "USER"
        assert "password_hash" not in body["data"]["user"]

    @pytest.mark.asyncio
    async def test_duplicate_email_conflicts(self, test_client, regular_user):
        response = await test_client.post(
            "/api/auth/register",
            json={"email": "READER@example.com", "password": DEFAULT_PASSWORD},
        )
        assert response.status_code == 409
        assert response.json() == {"success": False, "error": "User already exists", "code": "CONFLICT"}

    @pytest.mark.asyncio
    async def test_weak_password_lists_every_problem(self, test_client):
        response = await test_client.post(
            "/api/auth/register",
            json={"email": "weak@example.com", "password": "adm"},
        )
        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["error"] == "Password requirements not met"
        assert body["details"]["field"] == "password"
        assert len(body["details"]["errors"]) == 1

    @pytest.mark.asyncio
    async def test_forbidden_pattern_and_word(self, test_client):
        response = await test_client.post(
            "/api/auth/register",
            json={"email": "weak@example.com", "password": "Password123456"},
        )
        errors = response.json()["details"]["errors"]
        assert any("123456" in e for e in errors)
        assert any('"password"' in e for e in errors)

    @pytest.mark.asyncio
    async def test_invalid_email_is_validation_error(self, test_client):
        response = await test_client.post(
            "/api/auth/register",
            json={"email": "not-an-email", "password": DEFAULT_PASSWORD},
        )
        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert any(e["field"] == "body.email" for e in body["details"]["errors"])


class TestLogin:

    @pytest.mark.asyncio
    async def test_login_sets_cookie_and_returns_token(self, test_client, regular_user, test_settings):
        response = await test_client.post(
            "/api/auth/login",
            json={"email": "reader@example.com", "password": DEFAULT_PASSWORD},
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["user"]["id"] == str(regular_user.id)
        assert response.cookies.get(test_settings.session_cookie_name) == data["token"]
        assert "httponly" in response.headers["set-cookie"].lower()

    @pytest.mark.asyncio
    async def test_cookie_session_reaches_api(self, test_client, regular_user, test_settings):
        login = await test_client.post(
            "/api/auth/login",
            json={"email": "reader@example.com", "password": DEFAULT_PASSWORD},
        )
        token = login.json()["data"]["token"]
        response = await test_client.get(
            "/api/user/profile",
            headers={"Cookie": f"{test_settings.session_cookie_name}={token}"},
        )
        assert response.status_code == 200
        assert response.json()["data"]["email"] == "reader@example.com"

    @pytest.mark.asyncio
    async def test_wrong_password(self, test_client, regular_user):
        response = await test_client.post(
            "/api/auth/login",
            json={"email": "reader@example.com", "password": "Wr0ng!Secret"},
        )
        assert response.status_code == 401
        assert response.json()["error"] == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_unknown_email_same_error(self, test_client, db_tables):
        response = await test_client.post(
            "/api/auth/login",
            json={"email": "ghost@example.com", "password": DEFAULT_PASSWORD},
        )
        assert response.status_code == 401
        assert response.json()["error"] == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_logout_clears_cookie(self, test_client, test_settings):
        response = await test_client.post("/api/auth/logout")
        assert response.status_code == 200
        set_cookie = response.headers["set-cookie"]
        assert set_cookie.startswith(f"{test_settings.session_cookie_name}=")
        assert "max-age=0" in set_cookie.lower()


class TestResetPassword:

    @pytest.mark.asyncio
    async def test_known_address_gets_token(self, test_client, regular_user):
        response = await test_client.post("/api/auth/reset-password", json={"email": "reader@example.com"})
        assert response.status_code == 200
        assert response.json()["data"] == {"message": RESET_MESSAGE}

        async with async_session_factory() as session:
            tokens = (await session.execute(select(VerificationToken))).scalars().all()
        assert [t.identifier for t in tokens] == ["reader@example.com"]

    @pytest.mark.asyncio
    async def test_unknown_address_same_answer(self, test_client, db_tables):
        response = await test_client.post("/api/auth/reset-password", json={"email": "nobody@example.com"})
        assert response.status_code == 200
        assert response.json()["data"] == {"message": RESET_MESSAGE}
        assert response.json()["message"] == "Password reset email sent"
