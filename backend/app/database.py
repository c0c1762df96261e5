"""
FossFLOW Database Configuration
Async SQLAlchemy engine and session management.
"""

from typing import AsyncIterator

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base

from app.config import Settings

# Base class for all models
Base = declarative_base()


class Database:
    """
    Owns the async engine and session factory for one application instance.
    Created in the application lifespan and disposed on shutdown.
    """

    def __init__(self, settings: Settings):
        options = {
            "echo": settings.db_echo,
            "future": True,
            "pool_pre_ping": True,  # Check connection health before use
        }
        if not settings.database_url.startswith("sqlite"):
            options.update(
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_recycle=3600,  # Recycle connections every hour
            )
        self.engine = create_async_engine(settings.database_url, **options)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autocommit=False,
            autoflush=False,
        )

    async def create_all(self):
        """
        Initialize database tables.
        For development/testing only - use Alembic migrations in production.
        """
        # Import models so they are registered on Base.metadata
        import app.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def ping(self) -> bool:
        async with self.session_factory() as session:
            result = await session.execute(text("SELECT 1"))
            return result.scalar() == 1

    async def dispose(self):
        """Close database connections."""
        await self.engine.dispose()


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """
    Dependency that provides a database session.
    Use with FastAPI's Depends().
    """
    database: Database = request.app.state.db
    async with database.session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
