"""Integration tests for the block scheduler, its health endpoints and the manual task."""

import asyncio
from contextlib import asynccontextmanager
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from aiohttp import test_utils
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy import func, select

from blockminer.config.business_constants import SETTLEMENT_LOCK_KEY
from blockminer.models import Block
from blockminer.repositories.block_repository import BlockRepository
from blockminer.repositories.game_setting_repository import (
    GameSettingRepository,
)
from blockminer.services.settlement.settlement_service import SettlementService
from blockminer.utils.distributed_lock import DistributedLock
from blockminer.utils.exceptions import TransientStoreError
from jobs import health
from jobs.health import create_health_app
from jobs.scheduler import SETTLEMENT_JOB_ID, BlockScheduler


@pytest.fixture
def block_scheduler(session_maker, clock):
    """Scheduler bound to the test database."""
    return BlockScheduler(
        session_maker=session_maker,
        block_reward=100_000,
        interval_seconds=300,
        settlement_timeout=5,
        lock_timeout=10,
        clock=clock,
    )


async def block_count(session_maker):
    async with session_maker() as session:
        result = await session.execute(select(func.count()).select_from(Block))
        return result.scalar()


class TestTick:
    """Test one scheduler tick."""

    @pytest.mark.asyncio
    async def test_tick_settles_block(
        self, block_scheduler, make_participant, get_participant
    ):
        """A tick commits the next block and remembers it."""
        alice = await make_participant("alice", 100)

        block = await block_scheduler.tick()

        assert block.block_number == 1
        assert block_scheduler.last_block is block
        assert (await get_participant(alice)).balance == Decimal("100000")

    @pytest.mark.asyncio
    async def test_busy_lock_skips(self, block_scheduler, session_maker):
        """A tick finding the lock held does nothing."""
        token = await block_scheduler.lock.try_acquire(SETTLEMENT_LOCK_KEY)
        assert token is not None

        assert await block_scheduler.tick() is None
        assert await block_count(session_maker) == 0

    @pytest.mark.asyncio
    async def test_overlapping_ticks_settle_once(
        self, block_scheduler, make_participant, session_maker
    ):
        """Two ticks fired together produce one block."""
        await make_participant("alice", 100)

        results = await asyncio.gather(block_scheduler.tick(), block_scheduler.tick())

        assert sorted(r is None for r in results) == [False, True]
        assert await block_count(session_maker) == 1

    @pytest.mark.asyncio
    async def test_paused(self, block_scheduler, session_maker, make_participant):
        """No blocks while mining is paused."""
        await make_participant("alice", 100)
        async with session_maker() as session:
            await GameSettingRepository(session).set_value("mining_paused", "true")
            await session.commit()

        assert await block_scheduler.tick() is None
        assert await block_count(session_maker) == 0

    @pytest.mark.asyncio
    async def test_duplicate_number_not_credited_twice(
        self, block_scheduler, make_participant, get_participant, monkeypatch
    ):
        """A trigger racing to an already settled number is a no-op."""
        alice = await make_participant("alice", 100)
        await block_scheduler.tick()

        async def stale_latest_number(self):
            return 0

        monkeypatch.setattr(BlockRepository, "get_latest_number", stale_latest_number)

        assert await block_scheduler.tick() is None
        assert (await get_participant(alice)).balance == Decimal("100000")

    @pytest.mark.asyncio
    async def test_transient_failure_releases_lock(
        self, block_scheduler, monkeypatch
    ):
        """A failed tick is retried by the next one."""

        async def failing_settle(self):
            raise TransientStoreError("connection reset")

        monkeypatch.setattr(SettlementService, "settle_next_block", failing_settle)

        assert await block_scheduler.tick() is None
        assert await block_scheduler.lock.try_acquire(SETTLEMENT_LOCK_KEY) is not None

    @pytest.mark.asyncio
    async def test_timeout_aborts(self, block_scheduler, monkeypatch):
        """A settlement running past its budget is abandoned."""

        async def slow_settle(self):
            await asyncio.sleep(10)

        monkeypatch.setattr(SettlementService, "settle_next_block", slow_settle)
        block_scheduler.settlement_timeout = 0.05

        assert await block_scheduler.tick() is None
        assert await block_scheduler.lock.try_acquire(SETTLEMENT_LOCK_KEY) is not None

    @pytest.mark.asyncio
    async def test_unexpected_error_swallowed(self, block_scheduler, monkeypatch):
        """The timer keeps running whatever a tick raises."""

        async def broken_settle(self):
            raise RuntimeError("boom")

        monkeypatch.setattr(SettlementService, "settle_next_block", broken_settle)

        assert await block_scheduler.tick() is None

    @pytest.mark.asyncio
    async def test_lock_backend_down(self, session_maker, mock_redis_client, clock):
        """Unreachable lock backend skips the tick."""
        mock_redis_client.set.side_effect = RedisConnectionError("down")
        block_scheduler = BlockScheduler(
            session_maker=session_maker,
            lock=DistributedLock(redis_client=mock_redis_client),
            clock=clock,
        )

        assert await block_scheduler.tick() is None
        assert await block_count(session_maker) == 0


class TestLifecycle:
    """Test starting and stopping the timer."""

    @pytest.mark.asyncio
    async def test_start_and_shutdown(self, block_scheduler):
        """The interval job is registered while running."""
        assert block_scheduler.running is False
        assert block_scheduler.get_jobs() == []

        block_scheduler.start()
        try:
            assert block_scheduler.running is True
            assert [job.id for job in block_scheduler.get_jobs()] == [SETTLEMENT_JOB_ID]
        finally:
            block_scheduler.shutdown()

        assert block_scheduler.running is False


class TestHealthEndpoints:
    """Test the health check server."""

    @pytest.mark.asyncio
    async def test_stopped_scheduler_unhealthy(self, block_scheduler):
        """Health and readiness fail before start."""
        async with test_utils.TestClient(
            test_utils.TestServer(create_health_app(block_scheduler))
        ) as client:
            resp = await client.get("/health")
            assert resp.status == 503
            assert (await resp.json())["status"] == "stopped"

            resp = await client.get("/readiness")
            assert resp.status == 503

            resp = await client.get("/liveness")
            assert resp.status == 200

    @pytest.mark.asyncio
    async def test_running_scheduler_reports_last_block(
        self, block_scheduler, make_participant, monkeypatch
    ):
        """Health reports the job and the last settled block."""
        monkeypatch.setattr(health, "check_database_health", AsyncMock(return_value=True))
        await make_participant("alice", 100)
        await block_scheduler.tick()
        block_scheduler.start()

        try:
            async with test_utils.TestClient(
                test_utils.TestServer(create_health_app(block_scheduler))
            ) as client:
                resp = await client.get("/health")
                body = await resp.json()

                assert resp.status == 200
                assert body["status"] == "healthy"
                assert body["jobs_count"] == 1
                assert body["last_block_number"] == 1
                assert body["last_settled_at"].startswith("2026-01-15T12:00:00")

                resp = await client.get("/readiness")
                assert (await resp.json())["ready"] is True
        finally:
            block_scheduler.shutdown()

    @pytest.mark.asyncio
    async def test_database_down_not_ready(self, block_scheduler, monkeypatch):
        """Readiness fails when the database does not answer."""
        monkeypatch.setattr(health, "check_database_health", AsyncMock(return_value=False))
        block_scheduler.start()

        try:
            async with test_utils.TestClient(
                test_utils.TestServer(create_health_app(block_scheduler))
            ) as client:
                resp = await client.get("/readiness")
                body = await resp.json()

                assert resp.status == 503
                assert body["scheduler_running"] is True
                assert body["database"] is False
        finally:
            block_scheduler.shutdown()


class TestManualSettlementTask:
    """Test the dramatiq settlement task body."""

    @pytest.mark.asyncio
    async def test_settles_through_redis_lock(
        self, session_maker, make_participant, mock_redis_client, monkeypatch
    ):
        """The task settles one block and closes its Redis client."""
        from jobs.tasks import block_settlement

        monkeypatch.setattr(block_settlement.settings, "use_redis_lock", True)
        await make_participant("alice", 100)

        @asynccontextmanager
        async def test_session_maker():
            yield session_maker

        monkeypatch.setattr(block_settlement, "get_redis_client", lambda: mock_redis_client)
        monkeypatch.setattr(
            block_settlement, "create_local_session_maker", test_session_maker
        )

        assert await block_settlement._settle_block_async() == 1
        mock_redis_client.set.assert_awaited_once()
        mock_redis_client.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_skips_when_lock_held(
        self, session_maker, mock_redis_client, monkeypatch
    ):
        """Another settlement holding the lock makes the task a no-op."""
        from jobs.tasks import block_settlement

        monkeypatch.setattr(block_settlement.settings, "use_redis_lock", True)
        mock_redis_client.set.return_value = None

        @asynccontextmanager
        async def test_session_maker():
            yield session_maker

        monkeypatch.setattr(block_settlement, "get_redis_client", lambda: mock_redis_client)
        monkeypatch.setattr(
            block_settlement, "create_local_session_maker", test_session_maker
        )

        assert await block_settlement._settle_block_async() is None
        assert await block_count(session_maker) == 0

    @pytest.mark.asyncio
    async def test_refuses_without_shared_lock(
        self, session_maker, make_participant, monkeypatch
    ):
        """With a timer-private lock the task cannot exclude the timer and skips."""
        from jobs.tasks import block_settlement

        await make_participant("alice", 100)
        get_redis_client = MagicMock()
        monkeypatch.setattr(block_settlement.settings, "use_redis_lock", False)
        monkeypatch.setattr(block_settlement, "get_redis_client", get_redis_client)

        assert await block_settlement._settle_block_async() is None
        get_redis_client.assert_not_called()
        assert await block_count(session_maker) == 0
