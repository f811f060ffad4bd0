"""
Alembic Migration Environment
===============================

What:  Runs migrations for the portal models over the async engine.
How:   The database URL comes from portal.config settings (DATABASE_URL), not
       alembic.ini. SQLite URLs switch on batch mode so ALTER-style
       migrations work against local development databases.
Who:   `alembic upgrade head` / `alembic revision --autogenerate` from backend/.
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from portal.config import settings
from portal.database import Base

# Registers every table on Base.metadata for --autogenerate
from portal.models.article import Article  # noqa: F401
from portal.models.category import Category  # noqa: F401
from portal.models.user import User, UserPreference  # noqa: F401
from portal.models.verification_token import VerificationToken  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

DATABASE_URL = settings.database_url
IS_SQLITE = DATABASE_URL.startswith("sqlite")

MIGRATION_OPTIONS = {
    "target_metadata": Base.metadata,
    "compare_type": True,
    "render_as_batch": IS_SQLITE,
}


def run_migrations_offline() -> None:
    """Write the migration SQL to stdout instead of executing it."""
    context.configure(
        url=DATABASE_URL,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **MIGRATION_OPTIONS,
    )
    with context.begin_transaction():
        context.run_migrations()


def _migrate(connection: Connection) -> None:
    context.configure(connection=connection, **MIGRATION_OPTIONS)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = create_async_engine(DATABASE_URL, poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_migrate)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
