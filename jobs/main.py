"""
Settlement worker entry point.

Starts the block scheduler and the health check server, then waits for
SIGINT/SIGTERM.

Usage:
    python -m jobs.main
"""

import asyncio
import signal

from loguru import logger

from blockminer.config.database import async_engine
from blockminer.config.settings import settings
from blockminer.utils.distributed_lock import DistributedLock
from blockminer.utils.redis_utils import get_redis_client, get_redis_url_masked
from jobs.health import start_health_server, stop_health_server
from jobs.logging_config import setup_logging
from jobs.scheduler import BlockScheduler


async def main() -> None:
    """Run the settlement worker until a shutdown signal arrives."""
    setup_logging()

    redis_client = None
    if settings.use_redis_lock:
        redis_client = get_redis_client()
        logger.info(f"Settlement lock shared through {get_redis_url_masked()}")

    block_scheduler = BlockScheduler(lock=DistributedLock(redis_client=redis_client))
    block_scheduler.start()

    runner, _ = await start_health_server(
        block_scheduler, port=settings.health_check_port
    )

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    try:
        await stop_event.wait()
        logger.info("Shutdown signal received")
    finally:
        block_scheduler.shutdown()
        await stop_health_server(runner)
        if redis_client is not None:
            await redis_client.aclose()
        await async_engine.dispose()
        logger.info("Settlement worker stopped")


if __name__ == "__main__":
    asyncio.run(main())
