"""
Portal Backend - Database Session Management
==============================================

What:  Async SQLAlchemy engine, session factory, declarative Base and the
       per-request session dependency.
How:   The engine is created at import time from settings.database_url.
       get_db_session() commits on success and rolls back on any error.
Who:   Route handlers via Depends(get_db_session); Alembic via Base.metadata.

Connection Pooling:
    pool_size / max_overflow come from settings (defaults 20 + 10).
    pool_pre_ping validates pooled connections before use.
    SQLite (tests, local tooling) runs without a pool.
"""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from portal.config import settings


def _engine_options(database_url: str) -> dict:
    options = {"echo": settings.log_level == "DEBUG"}
    if database_url.startswith("sqlite"):
        options["poolclass"] = NullPool
    else:
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return options


# ── Engine Configuration ──────────────────────────────────────────────────
engine = create_async_engine(settings.database_url, **_engine_options(settings.database_url))

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: attributes stay readable after commit, which the
# response serializers rely on
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all ORM models; its metadata drives Alembic."""
    pass


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    Commits when the handler returns normally; rolls back and re-raises on
    any exception so the global handlers can build the error envelope.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def dispose_engine() -> None:
    """Closes all pooled connections. Called from the lifespan on shutdown."""
    await engine.dispose()
