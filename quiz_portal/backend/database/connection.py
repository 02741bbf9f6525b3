"""
Quiz Portal
Async engine and session lifecycle for the document store
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from .models import Base
from ..exceptions import DatabaseException
from ...config import get_database_url, get_settings

# Configure logging
logger = logging.getLogger(__name__)

# Set by init_database(), cleared by close_database_connections()
async_engine: Optional[AsyncEngine] = None
AsyncSessionLocal: Optional[async_sessionmaker] = None

_ASYNC_DRIVERS = {
    "postgresql://": "postgresql+asyncpg://",
    "sqlite://": "sqlite+aiosqlite://",
}


def get_async_database_url(database_url: str) -> str:
    """Swap a plain database URL for its async driver variant"""
    for prefix, async_prefix in _ASYNC_DRIVERS.items():
        if database_url.startswith(prefix):
            return async_prefix + database_url[len(prefix):]
    return database_url


def create_async_engine_instance() -> AsyncEngine:
    settings = get_settings()
    database_url = get_async_database_url(get_database_url())

    if database_url.startswith("sqlite"):
        # One shared connection, so an in-memory database lives as long as the engine
        return create_async_engine(
            database_url,
            echo=settings.DB_ECHO,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False, "timeout": 20}
        )

    return create_async_engine(
        database_url,
        echo=settings.DB_ECHO,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=30,
        pool_recycle=3600,
        pool_pre_ping=True
    )


async def init_database():
    """Create the engine and session factory, then make sure the tables exist"""
    global async_engine, AsyncSessionLocal

    logger.info("Connecting to the database...")

    try:
        async_engine = create_async_engine_instance()
        AsyncSessionLocal = async_sessionmaker(
            bind=async_engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=True
        )

        async with async_engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
            await conn.run_sync(Base.metadata.create_all)

        logger.info("✅ Database ready (users, quizzes, attempts)")

    except SQLAlchemyError as e:
        logger.error(f"❌ Database initialization failed: {e}")
        raise DatabaseException(f"Initialization failed: {e}") from e


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """A session that is rolled back if the block raises"""
    if AsyncSessionLocal is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")

    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request"""
    async with get_async_session() as session:
        yield session


@asynccontextmanager
async def database_transaction():
    """Session that commits when the block finishes cleanly"""
    async with get_async_session() as session:
        yield session
        await session.commit()


async def check_database_health() -> dict:
    try:
        async with get_async_session() as session:
            value = (await session.execute(text("SELECT 1"))).scalar()
    except (SQLAlchemyError, RuntimeError) as e:
        return {"status": "unhealthy", "database": "connection_failed", "error": str(e)}

    if value == 1:
        return {"status": "healthy", "database": "connected"}
    return {"status": "unhealthy", "database": "query_failed"}


async def close_database_connections():
    global async_engine, AsyncSessionLocal

    if async_engine is not None:
        await async_engine.dispose()
        async_engine = None
        AsyncSessionLocal = None
        logger.info("✅ Database engine disposed")


__all__ = [
    "init_database",
    "get_async_session",
    "get_db",
    "check_database_health",
    "close_database_connections",
    "database_transaction"
]
