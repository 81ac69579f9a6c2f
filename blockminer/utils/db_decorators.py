"""
Database decorators for automatic error handling and rollback.

Provides decorators to automatically handle database errors and rollbacks
in async functions that use SQLAlchemy sessions.
"""

from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession


T = TypeVar("T")


def _find_session(args: tuple[Any, ...], kwargs: dict[str, Any]) -> AsyncSession | None:
    """Locate the session among call arguments (kwarg, first arg or self.session)."""
    session = kwargs.get("session")
    if session is not None:
        return session

    if args:
        if isinstance(args[0], AsyncSession):
            return args[0]
        # Bound methods of services/repositories carry the session on self
        owner_session = getattr(args[0], "session", None)
        if isinstance(owner_session, AsyncSession):
            return owner_session

    return None


def with_rollback_on_error(func: Callable[..., T]) -> Callable[..., T]:
    """
    Decorator that automatically rolls back the session on any exception.

    Usage:
        @with_rollback_on_error
        async def my_function(session: AsyncSession, ...):
            ...

        class BalanceService:
            @with_rollback_on_error
            async def spend(self, ...):  # uses self.session
                ...

    The decorator will:
    1. Execute the wrapped function
    2. If an exception occurs, call session.rollback()
    3. Re-raise the exception for proper error handling

    Args:
        func: Async function to wrap

    Returns:
        Wrapped function with automatic rollback on error
    """
    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        session = _find_session(args, kwargs)

        if session is None:
            logger.warning(
                f"Function {func.__name__} decorated with @with_rollback_on_error "
                f"but no session argument found. Rollback will not be performed."
            )
            return await func(*args, **kwargs)

        try:
            return await func(*args, **kwargs)
        except Exception as e:
            try:
                await session.rollback()
                logger.info(
                    f"Rollback performed in {func.__name__} due to error: {type(e).__name__}"
                )
            except Exception as rollback_error:
                logger.error(
                    f"Failed to rollback in {func.__name__}: {rollback_error}",
                    exc_info=True
                )
            raise

    return wrapper
