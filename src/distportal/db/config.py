"""Database configuration and session management."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from distportal.config.settings import Settings, get_settings


def _engine_options(settings: Settings) -> dict[str, Any]:
    """Engine keyword arguments appropriate for the configured backend."""
    options: dict[str, Any] = {"echo": settings.DEBUG}
    if settings.is_sqlite:
        return options
    if settings.ENVIRONMENT == "test":
        options["poolclass"] = NullPool
        return options
    options.update(
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        pool_pre_ping=True,
    )
    return options


_settings = get_settings()

# Create async engine
engine = create_async_engine(_settings.DATABASE_URL, **_engine_options(_settings))

# Session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def init_db() -> None:
    """Verify database connectivity.

    Called during application startup so the connection pool is ready
    before accepting requests. Schema is managed by Alembic migrations.
    """
    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))


async def close_db() -> None:
    """Close database connections gracefully.

    Called during application shutdown to release all connections
    in the pool.
    """
    await engine.dispose()


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Context manager for obtaining a database session.

    Use this when you need a session outside of FastAPI dependency injection,
    such as a manual notification re-trigger from a script.

    Usage:
        async with get_async_session() as session:
            result = await session.execute(query)

    Yields:
        AsyncSession: A database session that will be automatically closed
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for FastAPI to inject database sessions.

    Commits when the request handler finishes without raising and rolls
    back otherwise.

    Usage:
        @router.get("/items")
        async def get_items(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
