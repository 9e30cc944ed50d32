"""
Database Session Management
Async engine and session factory lifecycle
"""

from typing import Optional

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from docvault.core.config import settings
from docvault.core.logging import get_logger
from docvault.db.base import Base

logger = get_logger(__name__)

# Engine
engine: Optional[AsyncEngine] = None
async_session_maker: Optional[async_sessionmaker[AsyncSession]] = None


def _engine_kwargs(url: str) -> dict:
    kwargs: dict = {
        "echo": settings.DEBUG,
        "pool_pre_ping": True,
    }
    if url.startswith("postgresql"):
        kwargs.update(
            {
                "pool_size": 10,
                "max_overflow": 20,
                "pool_recycle": 1800,
            }
        )
    return kwargs


def _unicode_lower(value):
    return value.lower() if isinstance(value, str) else value


async def init_db(url: Optional[str] = None, create_tables: Optional[bool] = None) -> async_sessionmaker[AsyncSession]:
    """
    Initialize database engine and session factory

    Args:
        url: SQLAlchemy URL (defaults to settings.SQLALCHEMY_URL)
        create_tables: Create tables from metadata (defaults to settings.DB_CREATE_TABLES
            outside production)

    Returns:
        The session factory
    """
    global engine, async_session_maker

    url = url or settings.SQLALCHEMY_URL
    logger.info(f"Connecting to database ({url.split('://')[0]})")

    engine = create_async_engine(url, **_engine_kwargs(url))

    if url.startswith("sqlite"):
        @event.listens_for(engine.sync_engine, "connect")
        def _configure_sqlite(dbapi_connection, connection_record):  # type: ignore[no-redef]
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
            # SQLite's built-in lower() only folds ASCII
            dbapi_connection.create_function("lower", 1, _unicode_lower, deterministic=True)

    async_session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    # Import models so they're registered with Base
    from docvault.db import models  # noqa: F401

    if create_tables is None:
        create_tables = settings.DB_CREATE_TABLES and settings.ENVIRONMENT != "production"

    # Create tables (use migrations for production)
    if create_tables:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created")

    return async_session_maker


async def close_db() -> None:
    """Close database connections"""
    global engine, async_session_maker

    if engine:
        await engine.dispose()
        engine = None
        async_session_maker = None
        logger.info("Database connection closed")


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Get the session factory"""
    if async_session_maker is None:
        raise RuntimeError("Database not initialized. Call init_db first.")
    return async_session_maker


async def check_connection() -> bool:
    """Check that the database answers a trivial query"""
    try:
        async with get_session_maker()() as session:
            await session.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning(f"Database check failed: {e}")
        return False
