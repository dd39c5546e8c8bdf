"""
Database configuration and session management.

Provides SQLAlchemy async engine setup, session factory, and dependency
injection for database sessions in FastAPI routes.
"""

from typing import AsyncGenerator

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from swordfighters_admin.core.config import settings
from swordfighters_admin.models.base import Base


def get_async_engine() -> AsyncEngine:
    """
    Create and configure the async SQLAlchemy engine.

    For SQLite:
    - Uses StaticPool (single shared connection, required for :memory:)
    - Enables check_same_thread=False for async compatibility
    - Turns on foreign key enforcement so credential rows cascade with admins

    Returns:
        Configured AsyncEngine instance
    """
    is_sqlite = settings.database_url.startswith("sqlite")

    connect_args: dict = {"check_same_thread": False} if is_sqlite else {}

    engine_kwargs = {
        "echo": False,
        "connect_args": connect_args,
    }

    if is_sqlite:
        engine_kwargs["poolclass"] = StaticPool
    else:
        engine_kwargs["pool_pre_ping"] = True

    engine = create_async_engine(
        settings.database_url,
        **engine_kwargs,
    )

    if is_sqlite:
        @event.listens_for(engine.sync_engine, "connect")
        def _set_sqlite_pragma(dbapi_connection, connection_record):  # noqa: ANN001
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


# Global async engine instance
engine = get_async_engine()


# Async session factory
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,  # Don't expire objects after commit
    autoflush=False,
)


async def init_db() -> None:
    """
    Initialize the database.

    For production, run migrations instead of create_all().
    Set DB_CREATE_ALL=true to create tables on startup for local development.
    """
    # Import models so metadata is populated before create_all()
    from swordfighters_admin import models  # noqa: F401

    if settings.db_create_all:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """
    Close the database connection pool.

    Called at application shutdown.
    """
    await engine.dispose()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency function to get database session.

    Commits when the request handler returns normally and rolls back when it
    raises. Services that must persist state before raising a domain error
    (clearing a challenge on a failed ceremony) commit explicitly first.

    Yields:
        AsyncSession instance for database operations
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def check_connection() -> bool:
    """
    Check if database connection is healthy.

    Returns:
        True if database is reachable, False otherwise
    """
    try:
        async with async_session_maker() as session:
            await session.execute(text("SELECT 1"))
            return True
    except Exception:
        return False
