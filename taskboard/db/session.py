"""
Database Session Management
===========================

Provides the process-wide async engine, the session factory and the
per-request session dependency.

The engine is created lazily on first use and torn down explicitly by
``close_db()`` in the application lifespan; request handlers never touch
the globals directly, they receive a session through ``Depends(get_db)``.
"""

import logging
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from taskboard.config import settings

logger = logging.getLogger(__name__)

# Global engine instance
_engine: AsyncEngine | None = None
_async_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """
    Get or create the async database engine.

    Pool configuration:
    - pool_size: 10 connections, max_overflow: 20
    - pool_recycle: recycle connections every 5 minutes
    - pool_pre_ping: checks a connection before handing it out
    """
    global _engine

    if _engine is None:
        if not settings.database_url_async:
            raise ValueError(
                "Database URL not configured. "
                "Please set DATABASE_URL environment variable."
            )

        _engine = create_async_engine(
            settings.database_url_async,
            echo=False,
            pool_size=10,
            max_overflow=20,
            pool_pre_ping=True,
            pool_recycle=300,
            pool_timeout=30,
        )

    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the async session factory."""
    global _async_session_factory

    if _async_session_factory is None:
        engine = get_engine()
        _async_session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    return _async_session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency that provides a database session.

    Usage:
        @router.get("/tasks")
        async def list_tasks(db: AsyncSession = Depends(get_db)):
            ...

    The session is committed on success or rolled back on error.
    """
    session_factory = get_session_factory()
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db() -> None:
    """
    Initialize the database connection.

    Called on application startup; runs a trivial query so the first real
    request does not pay the connection setup cost.
    """
    engine = get_engine()
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))

    logger.info("Database connection established")


async def close_db() -> None:
    """
    Close database connections.

    Called on application shutdown to clean up resources.
    """
    global _engine, _async_session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _async_session_factory = None
        logger.info("Database connections closed")
