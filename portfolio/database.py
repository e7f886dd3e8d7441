"""
Async engine and session factory for the portfolio content store.
PostgreSQL (asyncpg + pgvector) in production, SQLite (aiosqlite) in tests.
"""
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool
from typing import AsyncGenerator
import logging

from portfolio.config import settings

logger = logging.getLogger(__name__)

# No connection pooling: request sessions and background evaluation
# sessions each open their own connection
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=False,
    future=True,
    pool_pre_ping=True,
    poolclass=NullPool,
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session. Commits when the route returns normally and
    rolls back if it raises.

    Routes that hand work to a background task, or that touch files after
    writing, call ``await db.commit()`` themselves before doing so.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.error(f"Database session error: {e}")
            raise
        finally:
            await session.close()


async def init_db() -> None:
    """
    Create any missing tables. On PostgreSQL the ``vector`` extension is
    enabled first so chunk embeddings can use the pgvector column type.
    """
    try:
        async with engine.begin() as conn:
            from portfolio.models import database_models  # noqa: F401

            if conn.dialect.name == "postgresql":
                await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
                logger.info("pgvector extension created/verified")

            await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables created/verified")

    except Exception as e:
        logger.error(f"Error initializing database: {e}")
        raise


async def close_db() -> None:
    """Dispose of the engine on shutdown."""
    try:
        await engine.dispose()
        logger.info("Database connections closed")
    except Exception as e:
        logger.error(f"Error closing database: {e}")
        raise
