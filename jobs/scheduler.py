"""
Block scheduler.

Ticks on a fixed interval and settles one block per tick. Overlap is
prevented by a lock owned by the scheduler instance: a tick that finds the
lock busy logs and returns without queuing or backfilling.
"""

import asyncio
from collections.abc import Callable
from datetime import datetime
from decimal import Decimal

from apscheduler.job import Job
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from blockminer.config.business_constants import SETTLEMENT_LOCK_KEY
from blockminer.config.database import async_session_maker
from blockminer.config.settings import settings
from blockminer.models.block import Block
from blockminer.services.settlement.settlement_service import (
    SettlementService,
)
from blockminer.utils.datetime_utils import utc_now
from blockminer.utils.distributed_lock import DistributedLock, LockError
from blockminer.utils.exceptions import (
    DuplicateSettlementError,
    TransientStoreError,
)

SETTLEMENT_JOB_ID = "block_settlement"


class BlockScheduler:
    """
    Periodic block settlement.

    Example:
        block_scheduler = BlockScheduler()
        block_scheduler.start()
        ...
        block_scheduler.shutdown()
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession] | None = None,
        lock: DistributedLock | None = None,
        block_reward: int | Decimal | None = None,
        interval_seconds: int | None = None,
        settlement_timeout: float | None = None,
        lock_timeout: int | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """
        Initialize scheduler.

        Args:
            session_maker: Session factory (defaults to the app session maker)
            lock: Settlement lock; a private in-process lock if omitted
            block_reward: Base pool per block (defaults to settings)
            interval_seconds: Tick interval (defaults to settings)
            settlement_timeout: Budget for one settlement in seconds
            lock_timeout: Lock TTL in seconds
            clock: Source of settlement timestamps
        """
        self.session_maker = session_maker or async_session_maker
        self.lock = lock or DistributedLock()
        self.block_reward = (
            block_reward if block_reward is not None else settings.block_reward
        )
        self.interval_seconds = interval_seconds or settings.block_interval_seconds
        self.settlement_timeout = (
            settlement_timeout or settings.settlement_timeout_seconds
        )
        self.lock_timeout = lock_timeout or settings.settlement_lock_timeout_seconds
        self.clock = clock

        self.last_block: Block | None = None
        self._scheduler: AsyncIOScheduler | None = None

    @property
    def running(self) -> bool:
        """True while the interval timer is active."""
        return self._scheduler is not None and self._scheduler.running

    def get_jobs(self) -> list[Job]:
        """Scheduled jobs (empty when not started)."""
        if self._scheduler is None:
            return []
        return self._scheduler.get_jobs()

    def start(self) -> None:
        """
        Start the interval timer.

        Must be called from a running event loop.
        """
        if self.running:
            logger.warning("Block scheduler already running")
            return

        scheduler = AsyncIOScheduler(timezone="UTC")
        scheduler.add_job(
            self.tick,
            trigger="interval",
            seconds=self.interval_seconds,
            id=SETTLEMENT_JOB_ID,
            name="Block settlement",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        scheduler.start()
        self._scheduler = scheduler

        logger.info(
            f"Block scheduler started. Blocks will be settled every "
            f"{self.interval_seconds} seconds.",
            extra={
                "block_reward": str(self.block_reward),
                "distributed_lock": self.lock.is_distributed,
            },
        )

    def shutdown(self) -> None:
        """Stop the interval timer; an in-flight tick finishes on its own."""
        if self._scheduler is None:
            return

        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Block scheduler stopped")

    async def tick(self) -> Block | None:
        """
        Settle one block if no other settlement is running.

        Never raises: every failure is logged and the next tick retries.

        Returns:
            Committed block, or None if the tick was skipped or failed
        """
        try:
            async with self.lock.lock(
                SETTLEMENT_LOCK_KEY, timeout=self.lock_timeout
            ) as acquired:
                if not acquired:
                    logger.info("Settlement already in progress, skipping tick")
                    return None

                return await self._settle()
        except LockError as e:
            logger.bind(error=str(e)).error(
                f"Settlement lock unavailable, skipping tick: {e}"
            )
            return None

    async def _settle(self) -> Block | None:
        """Run the pipeline under the lock."""
        try:
            async with self.session_maker() as session:
                service = SettlementService(
                    session, self.block_reward, clock=self.clock
                )
                block = await asyncio.wait_for(
                    self._settle_unless_paused(service),
                    timeout=self.settlement_timeout,
                )
        except DuplicateSettlementError as e:
            logger.info(
                f"Block #{e.block_number} was settled by another trigger",
                extra={"block_number": e.block_number},
            )
            return None
        except TimeoutError:
            logger.warning(
                f"Settlement exceeded {self.settlement_timeout}s, "
                "aborted; next tick retries"
            )
            return None
        except TransientStoreError as e:
            logger.bind(error=str(e)).warning(
                f"Settlement aborted, next tick retries: {e}"
            )
            return None
        except Exception as e:
            logger.exception(f"Fatal error in block settlement: {e}")
            return None

        if block is not None:
            self.last_block = block
        return block

    @staticmethod
    async def _settle_unless_paused(service: SettlementService) -> Block | None:
        if await service.is_paused():
            logger.info("Mining is paused by admin, skipping tick")
            return None
        return await service.settle_next_block()
