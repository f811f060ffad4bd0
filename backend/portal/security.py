"""
Portal Backend - Session Tokens and Password Hashing
======================================================

What:  Signs and reads session tokens, hashes and verifies passwords.
How:   Sessions are HS256 JWTs (PyJWT) carrying the SessionUser claims.
       The token travels in the session cookie for browser navigation or in
       an `Authorization: Bearer` header for API clients.
       Passwords are hashed with Argon2id (argon2-cffi).
Who:   The auth gate middleware, API dependencies and the auth service.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError
from pydantic import BaseModel, ConfigDict
from starlette.requests import HTTPConnection

from portal.roles import Role

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

_hasher = PasswordHasher()


class SessionUser(BaseModel):
    """Identity attached to an authenticated request. Read-only."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    role: Role = Role.USER
    email: str
    name: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


# ── Session Tokens ────────────────────────────────────────────────────────

def create_session_token(user: SessionUser, secret_key: str, max_age: int) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user.user_id,
        "role": user.role.value,
        "email": user.email,
        "name": user.name,
        "iat": now,
        "exp": now + timedelta(seconds=max_age),
    }
    return jwt.encode(payload, secret_key, algorithm=ALGORITHM)


def decode_session_token(token: str, secret_key: str) -> Optional[SessionUser]:
    """
    Returns the SessionUser for a valid token, None for anything else.

    Expired, tampered or malformed tokens all read as "no session".
    """
    try:
        payload = jwt.decode(token, secret_key, algorithms=[ALGORITHM])
        return SessionUser(
            user_id=payload["sub"],
            role=Role(payload.get("role", Role.USER.value)),
            email=payload["email"],
            name=payload.get("name"),
        )
    except jwt.ExpiredSignatureError:
        logger.debug("Session token expired")
    except jwt.InvalidTokenError as e:
        logger.debug("Invalid session token: %s", e)
    except (KeyError, ValueError) as e:
        logger.debug("Malformed session token payload: %s", e)
    return None


def read_session(conn: HTTPConnection, secret_key: str, cookie_name: str) -> Optional[SessionUser]:
    """Resolves the session from the Bearer header, falling back to the cookie."""
    token = None
    authorization = conn.headers.get("authorization", "")
    if authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()
    if not token:
        token = conn.cookies.get(cookie_name)
    if not token:
        return None
    return decode_session_token(token, secret_key)


# ── Passwords ─────────────────────────────────────────────────────────────

def hash_password(password: str) -> str:
    return _hasher.hash(password)


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    try:
        return _hasher.verify(password_hash, password)
    except VerifyMismatchError:
        return False
    except (VerificationError, InvalidHashError):
        logger.warning("Stored password hash could not be verified")
        return False
