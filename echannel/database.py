"""Database configuration and connection management."""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from echannel.config import settings


def to_async_url(url: str) -> str:
    """Convert a sync database URL to its async driver equivalent."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return url


def is_sqlite_url(url: str) -> bool:
    """Check whether a URL points at SQLite."""
    return url.startswith("sqlite")


def configure_sqlite_engine(async_engine: AsyncEngine) -> None:
    """
    Make SQLite transactions take the write lock up front.

    pysqlite defers BEGIN until the first DML statement, which lets two
    bookings read the same slot before either writes. Emitting our own
    BEGIN IMMEDIATE serializes writers on the database lock, and the
    driver's busy timeout queues them instead of failing.
    """

    @event.listens_for(async_engine.sync_engine, "connect")
    def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(async_engine.sync_engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(url: str, **overrides: Any) -> AsyncEngine:
    """Create an async engine with settings appropriate to the backend."""
    async_url = to_async_url(url)

    if is_sqlite_url(async_url):
        kwargs: dict[str, Any] = {
            "echo": settings.debug,
            "connect_args": {"timeout": 30},
        }
    else:
        kwargs = {
            "echo": settings.debug,
            "pool_pre_ping": True,
            "pool_size": settings.database_pool_size,
            "max_overflow": settings.database_max_overflow,
            "pool_recycle": 3600,
            "connect_args": {
                "server_settings": {
                    "application_name": settings.app_name,
                },
            },
        }
    kwargs.update(overrides)

    async_engine = create_async_engine(async_url, **kwargs)
    if is_sqlite_url(async_url):
        configure_sqlite_engine(async_engine)
    return async_engine


# Create async engine with connection pooling
engine: AsyncEngine = build_engine(settings.database_url)

# Async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database sessions."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def check_database_connection() -> bool:
    """Check if database connection is healthy."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
