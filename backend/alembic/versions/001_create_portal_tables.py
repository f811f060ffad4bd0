"""Create portal tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  users, user_preferences, categories, articles, verification_tokens.
How:   UUID primary keys, TIMESTAMP WITH TIME ZONE, native enums for role,
       theme and article status.

Rollback: downgrade() drops every table and enum type (destructive).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

user_role = sa.Enum("USER", "MODERATOR", "ADMIN", name="user_role")
theme = sa.Enum("LIGHT", "DARK", "SYSTEM", name="theme")
article_status = sa.Enum("DRAFT", "PUBLISHED", "ARCHIVED", name="article_status")


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("password_hash", sa.String(255), nullable=True),
        sa.Column("role", user_role, nullable=False, server_default="USER"),
        sa.Column("avatar", sa.String(512), nullable=True),
        sa.Column("email_verified_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "user_preferences",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("theme", theme, nullable=False, server_default="SYSTEM"),
        *_timestamps(),
    )

    op.create_table(
        "categories",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("slug", sa.String(120), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("icon", sa.String(50), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_categories_slug", "categories", ["slug"], unique=True)

    op.create_table(
        "articles",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("status", article_status, nullable=False, server_default="DRAFT"),
        sa.Column("is_featured", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_hot", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("read_time", sa.String(32), nullable=False),
        sa.Column("view_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "author_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "category_id",
            sa.Uuid(),
            sa.ForeignKey("categories.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        *_timestamps(),
    )
    op.create_index("ix_articles_slug", "articles", ["slug"], unique=True)
    op.create_index("ix_articles_author_id", "articles", ["author_id"])
    op.create_index("ix_articles_category_id", "articles", ["category_id"])
    # Public listing: WHERE status = 'PUBLISHED' ORDER BY published_at DESC
    op.create_index(
        "idx_articles_status_published",
        "articles",
        ["status", sa.text("published_at DESC")],
    )

    op.create_table(
        "verification_tokens",
        sa.Column("token", sa.String(255), primary_key=True),
        sa.Column("identifier", sa.String(255), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_verification_tokens_identifier", "verification_tokens", ["identifier"])


def downgrade() -> None:
    op.drop_table("verification_tokens")
    op.drop_table("articles")
    op.drop_table("categories")
    op.drop_table("user_preferences")
    op.drop_table("users")

    bind = op.get_bind()
    article_status.drop(bind, checkfirst=True)
    theme.drop(bind, checkfirst=True)
    user_role.drop(bind, checkfirst=True)
