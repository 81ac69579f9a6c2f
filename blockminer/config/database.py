"""
Database configuration.

Async SQLAlchemy engine and session factory shared by the scheduler and
the query services.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from loguru import logger

from blockminer.config.settings import settings


def create_engine(database_url: str | None = None) -> AsyncEngine:
    """
    Create async engine.

    Args:
        database_url: Override for settings.database_url

    Returns:
        Configured AsyncEngine
    """
    return create_async_engine(
        database_url or settings.database_url,
        echo=settings.database_echo,
        pool_pre_ping=True,
    )


def create_session_maker(
    engine: AsyncEngine,
) -> async_sessionmaker[AsyncSession]:
    """Create session maker bound to engine."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async_engine = create_engine()
async_session_maker = create_session_maker(async_engine)


async def check_database_health() -> bool:
    """
    Check database connectivity.

    Returns:
        True if a trivial query succeeds
    """
    try:
        async with async_engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False
