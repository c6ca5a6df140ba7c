"""
Database Connection and Session Management

This module handles connectivity for the attendance log using SQLAlchemy's
async engine. The default URL is an in-memory SQLite database (aiosqlite),
which keeps the log for the lifetime of the process; a PostgreSQL URL
(asyncpg driver) makes it durable.
"""
from typing import Optional

from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool
from sqlalchemy import text
import logging

from app.config import DATABASE_URL, DB_POOL_SIZE, DB_MAX_OVERFLOW

logger = logging.getLogger(__name__)

# Base class for ORM models
Base = declarative_base()


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        # A single shared connection, otherwise every connection would get
        # its own empty in-memory database
        return {
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }
    return {
        "pool_size": DB_POOL_SIZE,
        "max_overflow": DB_MAX_OVERFLOW,
        "pool_pre_ping": True,  # Enable connection health checks
    }


class Database:
    """
    Owns the engine and session factory for one service instance.

    Created at application start-up and disposed at shutdown.
    """

    def __init__(self, url: str = DATABASE_URL, echo: bool = False):
        self.url = url
        self.engine: Optional[AsyncEngine] = None
        self.session_maker: Optional[async_sessionmaker] = None
        self._echo = echo

    async def init(self) -> None:
        """Create the engine, verify connectivity and create tables."""
        # Register the ORM models on Base.metadata
        import app.models  # noqa: F401

        self.engine = create_async_engine(self.url, echo=self._echo, **_engine_options(self.url))
        self.session_maker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        try:
            async with self.engine.begin() as conn:
                # Test connection
                await conn.execute(text("SELECT 1"))
                await conn.run_sync(Base.metadata.create_all)
            logger.info("Database connection established successfully")
        except Exception as e:
            logger.error(f"Failed to connect to database: {e}")
            raise

    async def close(self) -> None:
        """Close database connection pool."""
        if self.engine is not None:
            await self.engine.dispose()
            self.engine = None
            logger.info("Database connection pool closed")

    async def ping(self) -> bool:
        """Whether the database answers a trivial query."""
        if self.engine is None:
            return False
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
