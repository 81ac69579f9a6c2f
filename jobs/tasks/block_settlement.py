"""
Manual block settlement task.

Lets admin tooling or a redundant worker request a settlement outside the
timer. It goes through the same Redis lock as a scheduler started with
USE_REDIS_LOCK=true, so it no-ops while another settlement is running.
With USE_REDIS_LOCK=false the timer holds a private lock this task cannot
see, so the task refuses to run.
"""

import dramatiq
from loguru import logger

from blockminer.config.settings import settings
from blockminer.utils.distributed_lock import DistributedLock
from blockminer.utils.redis_utils import get_redis_client
from jobs.async_runner import create_local_session_maker, run_async
from jobs.broker import broker  # noqa: F401  (registers the Redis broker)
from jobs.scheduler import BlockScheduler


@dramatiq.actor(max_retries=0, time_limit=180_000)  # 3 min, above the lock TTL default
def settle_block() -> None:
    """Settle the next block now."""
    logger.info("Manual block settlement requested")

    try:
        block_number = run_async(_settle_block_async())
    except Exception as e:
        logger.exception(f"Manual block settlement failed: {e}")
        return

    if block_number is None:
        logger.info("Manual block settlement skipped")
    else:
        logger.info(f"Manual block settlement committed block #{block_number}")


async def _settle_block_async() -> int | None:
    """Async implementation of manual settlement."""
    if not settings.use_redis_lock:
        logger.warning(
            "Manual settlement requires USE_REDIS_LOCK=true; "
            "the timer lock is not shared, skipping"
        )
        return None

    redis_client = get_redis_client()
    try:
        async with create_local_session_maker() as session_maker:
            block_scheduler = BlockScheduler(
                session_maker=session_maker,
                lock=DistributedLock(redis_client=redis_client),
            )
            block = await block_scheduler.tick()
            return block.block_number if block else None
    finally:
        await redis_client.aclose()
