"""Async SQLAlchemy engine and session factory.

Learn: One pooled engine per process, one AsyncSession per request
(via the get_db dependency). The operator CLI and the SQL-backed tests
build their own short-lived engines with build_engine().
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from bizdesk.config import settings


def build_engine(url: str, *, pooled: bool = True, echo: bool = False) -> AsyncEngine:
    """Create an async engine. Unpooled engines are for one-shot scripts."""
    if not pooled:
        return create_async_engine(url, echo=echo, poolclass=NullPool)
    return create_async_engine(
        url,
        echo=echo,
        pool_size=5,
        max_overflow=15,
        pool_pre_ping=True,
    )


engine = build_engine(settings.database_url, echo=settings.debug)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncSession:
    """FastAPI dependency — yields a session per request, auto-closes."""
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()
