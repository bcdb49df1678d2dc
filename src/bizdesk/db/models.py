"""SQLAlchemy ORM models — single source of truth for the database schema.

Learn: Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Each class = one table. Alembic migrations mirror these models.

Key concepts:
- UUID primary keys for accounts (exposed in session tokens)
- Generic Uuid / JSON types so the schema is not tied to one dialect
- Profile payload (OKRs, calendar, results) is opaque JSON to the backend
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    JSON,
    DateTime,
    Enum,
    Float,
    Integer,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from bizdesk.auth.password import Credential, credential_from_hash
from bizdesk.auth.roles import Role


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_uuid() -> uuid.UUID:
    return uuid.uuid4()


def default_okrs() -> dict:
    return {"yearly": [], "quarterly": [], "monthly": []}


def default_pomodoro_stats() -> dict:
    return {"daily_cycles": {}, "total_points": 0}


# ══════════════════════════════════════════════════════════════
# Accounts
# ══════════════════════════════════════════════════════════════


class Account(Base):
    """A user account.

    Learn: Identified by phone (password sign-up) or email (Google
    sign-in). password_hash is NULL only for Google-created accounts;
    read it through `credential` rather than testing the column.
    reset_code and reset_code_expires_at are always written together.
    """

    __tablename__ = "accounts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(
        String(32), unique=True, nullable=True
    )
    email: Mapped[Optional[str]] = mapped_column(
        String(255), unique=True, nullable=True
    )
    password_hash: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True
    )  # NULL for Google accounts
    role: Mapped[Role] = mapped_column(
        Enum(
            Role,
            name="account_role",
            native_enum=False,
            length=20,
            values_callable=lambda roles: [r.value for r in roles],
            validate_strings=True,
        ),
        nullable=False,
        default=Role.USER,
    )

    reset_code: Mapped[Optional[str]] = mapped_column(String(6), nullable=True)
    reset_code_expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Profile
    company_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    company_size: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    position: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    subscription_tier: Mapped[str] = mapped_column(
        String(20), nullable=False, default="free"
    )
    results: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    okrs_data: Mapped[dict] = mapped_column(JSON, nullable=False, default=default_okrs)
    calendar_events: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    pomodoro_stats: Mapped[dict] = mapped_column(
        JSON, nullable=False, default=default_pomodoro_stats
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=utcnow
    )

    @property
    def credential(self) -> Credential:
        return credential_from_hash(self.password_hash)


# ══════════════════════════════════════════════════════════════
# Knowledge library + software reviews
# ══════════════════════════════════════════════════════════════


class Article(Base):
    """A knowledge-library article. Content blocks are opaque JSON."""

    __tablename__ = "articles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    format: Mapped[str] = mapped_column(String(50), nullable=False)
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    content: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class Review(Base):
    """A software product review (CRM, accounting, ...)."""

    __tablename__ = "reviews"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_name: Mapped[str] = mapped_column(String(200), nullable=False)
    logo_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    category: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    overall_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    pros: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    cons: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    video_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    features: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    full_review: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
