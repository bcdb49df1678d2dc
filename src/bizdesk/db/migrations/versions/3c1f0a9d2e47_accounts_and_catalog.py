"""accounts, articles, reviews

Learn: accounts.phone and accounts.email are each UNIQUE but nullable —
password accounts have a phone, Google accounts have an email, and the
database enforces uniqueness for whichever is present. The reset-code
pair is nullable and written together by the identity service.

Revision ID: 3c1f0a9d2e47
Revises:
Create Date: 2026-10-19 09:12:44.120551
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c1f0a9d2e47'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("password_hash", sa.String(255), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="user"),
        sa.Column("reset_code", sa.String(6), nullable=True),
        sa.Column("reset_code_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("company_name", sa.String(200), nullable=True),
        sa.Column("company_size", sa.String(50), nullable=True),
        sa.Column("position", sa.String(100), nullable=True),
        sa.Column("subscription_tier", sa.String(20), nullable=False, server_default="free"),
        sa.Column("results", sa.JSON(), nullable=False),
        sa.Column("okrs_data", sa.JSON(), nullable=False),
        sa.Column("calendar_events", sa.JSON(), nullable=False),
        sa.Column("pomodoro_stats", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("phone", name="uq_accounts_phone"),
        sa.UniqueConstraint("email", name="uq_accounts_email"),
        sa.CheckConstraint("role IN ('user', 'admin')", name="ck_accounts_role"),
        sa.CheckConstraint(
            "(reset_code IS NULL) = (reset_code_expires_at IS NULL)",
            name="ck_accounts_reset_code_pair",
        ),
    )

    op.create_table(
        "articles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("format", sa.String(50), nullable=False),
        sa.Column("summary", sa.Text(), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("content", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_articles_category", "articles", ["category"])

    op.create_table(
        "reviews",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("product_name", sa.String(200), nullable=False),
        sa.Column("logo_url", sa.String(500), nullable=True),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("overall_score", sa.Float(), nullable=True),
        sa.Column("pros", sa.JSON(), nullable=False),
        sa.Column("cons", sa.JSON(), nullable=False),
        sa.Column("video_url", sa.String(500), nullable=True),
        sa.Column("features", sa.JSON(), nullable=False),
        sa.Column("full_review", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_reviews_category", "reviews", ["category"])


def downgrade() -> None:
    op.drop_index("ix_reviews_category", table_name="reviews")
    op.drop_table("reviews")
    op.drop_index("ix_articles_category", table_name="articles")
    op.drop_table("articles")
    op.drop_table("accounts")
