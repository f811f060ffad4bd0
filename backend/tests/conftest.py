"""
Portal Backend - Test Configuration (conftest.py)
===================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Tests run against a throwaway SQLite file (aiosqlite) and a temporary
       storage root. Tables are created and dropped around every test that
       asks for the database.

Fixture Hierarchy:
    Function-scoped:
    ├── test_settings:    Settings pointing at a per-test storage directory
    ├── db_tables:        create_all / drop_all around the test
    ├── db_session:       AsyncSession for service-level tests
    ├── app:              create_app(test_settings), fresh limiter per test
    ├── test_client:      HTTPX AsyncClient over ASGITransport
    ├── create_user:      async factory persisting a User in its own session
    ├── regular_user / admin_user
    └── auth_headers:     Bearer header for a given user
"""

import os
import tempfile
from pathlib import Path

# Override settings for testing BEFORE any portal imports
_TEST_DIR = Path(tempfile.mkdtemp(prefix="portal_test_"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR / 'test.db'}"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["STORAGE_ROOT"] = str(_TEST_DIR / "storage")
os.environ["ENVIRONMENT"] = "development"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from portal.config import Settings
from portal.database import Base, async_session_factory, engine
from portal.main import create_app
from portal.models.article import Article  # noqa: F401
from portal.models.category import Category  # noqa: F401
from portal.models.user import User
from portal.models.verification_token import VerificationToken  # noqa: F401
from portal.roles import Role
from portal.security import create_session_token, hash_password
from portal.services.auth_service import session_user_for

DEFAULT_PASSWORD = "Str0ng!Secret"


# ══════════════════════════════════════════════════════════════════════════
# Settings & Application
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def test_settings(tmp_path):
    """Settings with an isolated storage root; limits keep their defaults."""
    return Settings(storage_root=str(tmp_path / "storage"))


@pytest.fixture
def app(test_settings):
    return create_app(test_settings)


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_tables():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session(db_tables):
    """
    A session for calling services directly.

    Tests commit when they need the data visible to another session.
    """
    async with async_session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def test_client(app, db_tables):
    """
    Async HTTP client wired straight into the app.

        async def test_health(test_client):
            response = await test_client.get("/health")
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


# ══════════════════════════════════════════════════════════════════════════
# Users & Sessions
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def create_user(db_tables):
    """Factory fixture: `user = await create_user("a@example.com", role=Role.ADMIN)`."""

    async def _create(
        email: str,
        role: Role = Role.USER,
        password: str = DEFAULT_PASSWORD,
        name: str = "Test User",
    ) -> User:
        async with async_session_factory() as session:
            user = User(
                email=email,
                name=name,
                role=role,
                password_hash=hash_password(password),
            )
            session.add(user)
            await session.commit()
            return user

    return _create


@pytest_asyncio.fixture
async def regular_user(create_user):
    return await create_user("reader@example.com", name="Regular Reader")


@pytest_asyncio.fixture
async def admin_user(create_user):
    return await create_user("admin@example.com", role=Role.ADMIN, name="Site Admin")


@pytest.fixture
def auth_headers(test_settings):
    """Builds a Bearer header carrying a session token for `user`."""

    def _headers(user: User) -> dict:
        token = create_session_token(
            session_user_for(user), test_settings.secret_key, test_settings.session_max_age
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def temp_storage(tmp_path):
    """A fresh storage root for each test."""
    storage_dir = tmp_path / "files"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def sample_image_bytes():
    """The smallest valid PNG: signature, IHDR, IDAT, IEND."""
    return (
        b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01"
        b"\x08\x06\x00\x00\x00\x1f\x15\xc4\x89\x00\x00\x00\rIDATx\x9cc\xf8\x0f"
        b"\x00\x00\x01\x01\x00\x05\x18\xd8N\x00\x00\x00\x00IEND\xaeB`\x82"
    )
