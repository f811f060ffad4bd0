"""Session token and password hashing tests."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest
from starlette.requests import Request

from portal.roles import Role, can_moderate, has_role, is_admin
from portal.security import (
    SessionUser,
    create_session_token,
    decode_session_token,
    hash_password,
    read_session,
    verify_password,
)

SECRET = "unit-test-secret"


def make_request(headers=None) -> Request:
    raw = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw})


class TestSessionTokens:

    def setup_method(self):
        self.user = SessionUser(user_id="42", role=Role.MODERATOR, email="m@example.com", name="Mod")

    def test_round_trip(self):
        token = create_session_token(self.user, SECRET, max_age=60)
        assert decode_session_token(token, SECRET) == self.user

    def test_wrong_secret_is_no_session(self):
        token = create_session_token(self.user, SECRET, max_age=60)
        assert decode_session_token(token, "other-secret") is None

    def test_expired_token_is_no_session(self):
        past = datetime.now(timezone.utc) - timedelta(hours=1)
        token = jwt.encode(
            {"sub": "42", "email": "m@example.com", "role": "USER", "iat": past, "exp": past},
            SECRET,
            algorithm="HS256",
        )
        assert decode_session_token(token, SECRET) is None

    def test_unknown_role_is_no_session(self):
        token = jwt.encode({"sub": "42", "email": "x@example.com", "role": "ROOT"}, SECRET, algorithm="HS256")
        assert decode_session_token(token, SECRET) is None

    def test_missing_claims_is_no_session(self):
        token = jwt.encode({"role": "USER"}, SECRET, algorithm="HS256")
        assert decode_session_token(token, SECRET) is None


class TestReadSession:

    def test_bearer_header(self):
        token = create_session_token(SessionUser(user_id="1", email="a@example.com"), SECRET, 60)
        session = read_session(make_request({"Authorization": f"Bearer {token}"}), SECRET, "portal_session")
        assert session.user_id == "1"

    def test_cookie_fallback(self):
        token = create_session_token(SessionUser(user_id="2", email="b@example.com"), SECRET, 60)
        session = read_session(make_request({"Cookie": f"portal_session={token}"}), SECRET, "portal_session")
        assert session.user_id == "2"

    def test_no_credentials(self):
        assert read_session(make_request(), SECRET, "portal_session") is None


class TestPasswords:

    def test_hash_and_verify(self):
        hashed = hash_password("Str0ng!Secret")
        assert hashed != "Str0ng!Secret"
        assert verify_password("Str0ng!Secret", hashed)
        assert not verify_password("wrong", hashed)

    @pytest.mark.parametrize("stored", [None, "", "not-an-argon2-hash"])
    def test_missing_or_invalid_hash(self, stored):
        assert verify_password("anything", stored) is False


class TestRoles:

    def test_hierarchy(self):
        assert has_role(Role.ADMIN, Role.MODERATOR)
        assert has_role(Role.MODERATOR, Role.USER)
        assert not has_role(Role.USER, Role.MODERATOR)

    def test_helpers(self):
        assert is_admin(Role.ADMIN)
        assert not is_admin(Role.MODERATOR)
        assert can_moderate(Role.MODERATOR)
        assert not can_moderate(Role.USER)
