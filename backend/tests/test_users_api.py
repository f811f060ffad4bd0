"""
Portal Backend - User Management API Tests
============================================

What:  Admin listing, self/admin reads and updates, role changes and deletes.
"""

import pytest

from portal.database import async_session_factory
from portal.models.user import User
from portal.roles import Role
from portal.security import verify_password


class TestListUsers:

    @pytest.mark.asyncio
    async def test_admin_lists_with_pagination(self, test_client, admin_user, create_user, auth_headers):
        for i in range(3):
            await create_user(f"member{i}@example.com", name=f"Member {i}")

        response = await test_client.get("/api/users?page=1&limit=2", headers=auth_headers(admin_user))

        assert response.status_code == 200
        data = response.json()["data"]
        assert len(data["users"]) == 2
        assert data["pagination"] == {
            "page": 1,
            "limit": 2,
            "total": 4,
            "total_pages": 2,
            "has_next": True,
            "has_prev": False,
        }

    @pytest.mark.asyncio
    async def test_search_and_role_filter(self, test_client, admin_user, create_user, auth_headers):
        await create_user("alice@example.com", name="Alice")
        await create_user("bob@example.com", name="Bob", role=Role.MODERATOR)

        by_name = await test_client.get("/api/users?search=ALI", headers=auth_headers(admin_user))
        assert [u["email"] for u in by_name.json()["data"]["users"]] == ["alice@example.com"]

        by_role = await test_client.get("/api/users?role=MODERATOR", headers=auth_headers(admin_user))
        assert [u["email"] for u in by_role.json()["data"]["users"]] == ["bob@example.com"]

    @pytest.mark.asyncio
    async def test_non_admin_forbidden(self, test_client, regular_user, auth_headers):
        response = await test_client.get("/api/users", headers=auth_headers(regular_user))
        assert response.status_code == 403
        assert response.json()["code"] == "FORBIDDEN"

    @pytest.mark.asyncio
    async def test_anonymous_unauthorized(self, test_client):
        response = await test_client.get("/api/users")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_limit_out_of_range(self, test_client, admin_user, auth_headers):
        response = await test_client.get("/api/users?limit=500", headers=auth_headers(admin_user))
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"


class TestGetAndUpdateUser:

    @pytest.mark.asyncio
    async def test_read_self(self, test_client, regular_user, auth_headers):
        response = await test_client.get(f"/api/users/{regular_user.id}", headers=auth_headers(regular_user))
        assert response.status_code == 200
        assert response.json()["data"]["user"]["email"] == "reader@example.com"

    @pytest.mark.asyncio
    async def test_read_other_user_forbidden(self, test_client, regular_user, admin_user, auth_headers):
        response = await test_client.get(f"/api/users/{admin_user.id}", headers=auth_headers(regular_user))
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_unknown_id_not_found(self, test_client, admin_user, auth_headers):
        response = await test_client.get("/api/users/not-a-uuid", headers=auth_headers(admin_user))
        assert response.status_code == 404
        assert response.json()["error"] == "User not found"

    @pytest.mark.asyncio
    async def test_update_self(self, test_client, regular_user, auth_headers):
        response = await test_client.put(
            f"/api/users/{regular_user.id}",
            json={"name": "Renamed", "password": "N3w!Secret"},
            headers=auth_headers(regular_user),
        )
        assert response.status_code == 200
        assert response.json()["data"]["user"]["name"] == "Renamed"

        async with async_session_factory() as session:
            stored = await session.get(User, regular_user.id)
        assert verify_password("N3w!Secret", stored.password_hash)

    @pytest.mark.asyncio
    async def test_user_cannot_promote_self(self, test_client, regular_user, auth_headers):
        response = await test_client.put(
            f"/api/users/{regular_user.id}",
            json={"role": "ADMIN"},
            headers=auth_headers(regular_user),
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_email_conflict(self, test_client, regular_user, admin_user, auth_headers):
        response = await test_client.put(
            f"/api/users/{regular_user.id}",
            json={"email": "admin@example.com"},
            headers=auth_headers(regular_user),
        )
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_unknown_field_rejected(self, test_client, regular_user, auth_headers):
        response = await test_client.put(
            f"/api/users/{regular_user.id}",
            json={"rol": "ADMIN"},
            headers=auth_headers(regular_user),
        )
        assert response.status_code == 400


class TestRoleAndDelete:

    @pytest.mark.asyncio
    async def test_admin_changes_role(self, test_client, admin_user, regular_user, auth_headers):
        response = await test_client.put(
            f"/api/users/{regular_user.id}/role",
            json={"role": "MODERATOR"},
            headers=auth_headers(admin_user),
        )
        assert response.status_code == 200
        assert response.json()["data"]["user"]["role"] == "MODERATOR"

    @pytest.mark.asyncio
    async def test_admin_cannot_demote_self(self, test_client, admin_user, auth_headers):
        response = await test_client.put(
            f"/api/users/{admin_user.id}/role",
            json={"role": "USER"},
            headers=auth_headers(admin_user),
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Cannot remove your own admin role"

    @pytest.mark.asyncio
    async def test_admin_deletes_user(self, test_client, admin_user, regular_user, auth_headers):
        response = await test_client.delete(f"/api/users/{regular_user.id}", headers=auth_headers(admin_user))
        assert response.status_code == 200
        assert response.json()["data"] == {"deleted": True}

        async with async_session_factory() as session:
            assert await session.get(User, regular_user.id) is None

    @pytest.mark.asyncio
    async def test_admin_cannot_delete_self(self, test_client, admin_user, auth_headers):
        response = await test_client.delete(f"/api/users/{admin_user.id}", headers=auth_headers(admin_user))
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_user_cannot_delete(self, test_client, regular_user, admin_user, auth_headers):
        response = await test_client.delete(f"/api/users/{admin_user.id}", headers=auth_headers(regular_user))
        assert response.status_code == 403
