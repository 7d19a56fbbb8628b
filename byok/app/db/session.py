# byok/app/db/session.py
"""
Async database engine and session factory for SQLAlchemy.

- Uses aiosqlite for SQLite (the default device-local store)
- Uses asyncpg for PostgreSQL when DATABASE_URL points at one
- Pool settings differ for SQLite (no pooling) vs PostgreSQL

The application builds one engine per process in its lifespan hook and hands
the session factory to the repositories; nothing is created at import time so
tests can point the service at a throwaway database.
"""
from typing import Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool, AsyncAdaptedQueuePool

from byok.app.core.config import Settings, settings as default_settings


def create_engine(config: Optional[Settings] = None) -> AsyncEngine:
    """
    Create and configure the async SQLAlchemy engine.

    SQLite:
    - NullPool (SQLite doesn't support connection pooling well)
    - check_same_thread=False for async compatibility

    PostgreSQL:
    - AsyncAdaptedQueuePool with pre-ping and a 5 minute recycle

    Returns:
        Configured AsyncEngine instance
    """
    config = config or default_settings

    if config.is_sqlite:
        return create_async_engine(
            config.DATABASE_URL,
            echo=config.DATABASE_ECHO,
            poolclass=NullPool,
            connect_args={"check_same_thread": False},
        )

    return create_async_engine(
        config.DATABASE_URL,
        echo=config.DATABASE_ECHO,
        poolclass=AsyncAdaptedQueuePool,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        pool_recycle=300,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Session factory used by the SQL repositories.

    expire_on_commit=False: rows stay readable after commit so they can be
    converted to domain records outside the session
    autoflush=False: explicit flush control
    """
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def create_tables(engine: AsyncEngine) -> None:
    """Create every table registered on Base.metadata (idempotent)."""
    from byok.app.db.base import Base
    # Import models so SQLAlchemy registers their tables
    from byok.app.models import credential, encryption_key, generation_job  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
