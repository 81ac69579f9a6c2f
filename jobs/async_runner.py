"""
Async runner for dramatiq tasks.

Provides a thread-safe way to run async code in dramatiq actors.
Solves the event loop issues with SQLAlchemy and Redis connections.
"""

import asyncio
import threading
from collections.abc import AsyncIterator, Coroutine
from contextlib import asynccontextmanager
from typing import Any, TypeVar

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from blockminer.config.settings import settings

T = TypeVar("T")

# Thread-local storage for event loops
_thread_local = threading.local()


def get_event_loop() -> asyncio.AbstractEventLoop:
    """
    Get or create event loop for current thread.

    Creates a new event loop for each thread and reuses it.
    This prevents "Future attached to a different loop" errors.
    """
    loop = getattr(_thread_local, "loop", None)
    if loop is None or loop.is_closed():
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        _thread_local.loop = loop
        logger.debug(f"Created new event loop for thread {threading.current_thread().name}")
    return loop


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """
    Run async coroutine in the thread's event loop.

    This is the recommended way to run async code in dramatiq actors.
    It reuses the same event loop per thread, preventing connection issues.

    Args:
        coro: Async coroutine to run

    Returns:
        Result of the coroutine
    """
    loop = get_event_loop()
    try:
        return loop.run_until_complete(coro)
    except Exception as e:
        logger.exception(f"Error running async coroutine: {e}")
        raise


@asynccontextmanager
async def create_local_session_maker() -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """
    Create a session maker bound to a private engine for the current loop.

    The engine uses NullPool to avoid connection pool issues when running
    in dramatiq workers with multiple threads, and is disposed on exit.

    Usage:
        async with create_local_session_maker() as session_maker:
            async with session_maker() as session:
                ...
    """
    local_engine = create_async_engine(
        settings.database_url,
        echo=False,
        poolclass=NullPool,
    )

    try:
        yield async_sessionmaker(
            local_engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    finally:
        await local_engine.dispose()
