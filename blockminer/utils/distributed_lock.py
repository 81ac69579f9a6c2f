"""
Distributed lock.

Non-blocking mutual exclusion for settlement. With a Redis client the lock
is shared by every process pointing at the same Redis (SET NX PX with a
token-checked release); without one it is an asyncio.Lock held by this
DistributedLock instance only.
"""

import asyncio
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from loguru import logger

from redis.asyncio import Redis
from redis.exceptions import RedisError

from blockminer.utils.exceptions import SettlementError


class LockError(SettlementError):
    """Lock backend unavailable; the guarded operation must not run."""

    pass


# Delete the key only if we still own it
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class DistributedLock:
    """
    Try-lock with automatic expiry.

    Example:
        lock = DistributedLock(redis_client=redis_client)
        async with lock.lock("block_settlement", timeout=120) as acquired:
            if not acquired:
                return
            ...
    """

    def __init__(
        self,
        redis_client: Redis | None = None,
        key_prefix: str = "lock:",
    ) -> None:
        """
        Initialize lock.

        Args:
            redis_client: Redis client for cross-process locking (optional)
            key_prefix: Prefix for Redis lock keys
        """
        self.redis_client = redis_client
        self.key_prefix = key_prefix
        self._local_locks: dict[str, asyncio.Lock] = {}

    @property
    def is_distributed(self) -> bool:
        """True when the lock is shared through Redis."""
        return self.redis_client is not None

    def _local_lock(self, key: str) -> asyncio.Lock:
        lock = self._local_locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._local_locks[key] = lock
        return lock

    async def try_acquire(self, key: str, timeout: int = 60) -> str | None:
        """
        Acquire the lock without waiting.

        Args:
            key: Lock name
            timeout: Expiry in seconds (Redis only)

        Returns:
            Ownership token, or None if the lock is held elsewhere

        Raises:
            LockError: If the Redis backend cannot be reached
        """
        token = uuid.uuid4().hex

        if self.redis_client is None:
            lock = self._local_lock(key)
            if lock.locked():
                return None
            # Uncontended acquire completes without yielding to the loop
            await lock.acquire()
            return token

        try:
            acquired = await self.redis_client.set(
                f"{self.key_prefix}{key}",
                token,
                nx=True,
                px=timeout * 1000,
            )
        except RedisError as e:
            raise LockError(f"Failed to acquire lock {key}: {e}") from e

        return token if acquired else None

    async def release(self, key: str, token: str) -> None:
        """
        Release a lock previously acquired with try_acquire.

        Args:
            key: Lock name
            token: Token returned by try_acquire
        """
        if self.redis_client is None:
            lock = self._local_locks.get(key)
            if lock is not None and lock.locked():
                lock.release()
            return

        try:
            released = await self.redis_client.eval(
                _RELEASE_SCRIPT, 1, f"{self.key_prefix}{key}", token
            )
        except RedisError as e:
            # Key expires on its own after the TTL
            logger.bind(lock_key=key).error(f"Failed to release lock {key}: {e}")
            return

        if not released:
            logger.warning(
                "Lock expired before release",
                extra={"lock_key": key},
            )

    @asynccontextmanager
    async def lock(self, key: str, timeout: int = 60) -> AsyncIterator[bool]:
        """
        Context manager around try_acquire/release.

        Yields True if the lock was acquired. The lock is released on every
        exit path, exceptions included.
        """
        token = await self.try_acquire(key, timeout=timeout)
        try:
            yield token is not None
        finally:
            if token is not None:
                await self.release(key, token)
