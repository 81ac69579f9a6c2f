"""
Integration tests for block settlement against a real database.

Tests cover:
- Proportional rewards credited to balances
- Strictly increasing block numbers
- Bonus inputs read from the store
- Empty network and excluded participants
- Atomic, idempotent commits
- Spends interleaved with settlement
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from blockminer.models import Block, BlockReward
from blockminer.repositories.game_setting_repository import (
    GameSettingRepository,
)
from blockminer.services.balance_service import BalanceService
from blockminer.services.settlement.reward_allocator import (
    AllocationInput,
    RewardAllocator,
)
from blockminer.services.settlement.settlement_committer import (
    SettlementCommitter,
)
from blockminer.services.settlement.settlement_service import SettlementService
from blockminer.utils.exceptions import DuplicateSettlementError, SettlementError

BLOCK_REWARD = 100_000


async def settle(session_maker, clock):
    async with session_maker() as session:
        return await SettlementService(
            session, BLOCK_REWARD, clock=clock
        ).settle_next_block()


async def count_rows(session_maker, model):
    async with session_maker() as session:
        result = await session.execute(select(func.count()).select_from(model))
        return result.scalar()


class TestSettleNextBlock:
    """Test the full settlement pipeline."""

    @pytest.mark.asyncio
    async def test_rewards_credited(
        self, session_maker, make_participant, get_participant, clock, now
    ):
        """Capacities 100/300 earn 25000/75000 and balances move by that."""
        alice = await make_participant("alice", 100)
        bob = await make_participant("bob", 300, balance="10")

        block = await settle(session_maker, clock)

        assert block.block_number == 1
        assert block.participant_count == 2
        assert block.total_reward == Decimal("100000")
        assert block.total_distributed == Decimal("100000")
        assert block.settled_at == now

        alice_row = await get_participant(alice)
        bob_row = await get_participant(bob)
        assert alice_row.balance == Decimal("25000")
        assert alice_row.total_earned == Decimal("25000")
        assert bob_row.balance == Decimal("75010")
        assert bob_row.total_earned == Decimal("75000")

    @pytest.mark.asyncio
    async def test_block_numbers_increase(self, session_maker, make_participant, clock):
        """Each settlement takes the next number."""
        await make_participant("alice", 10)

        numbers = [(await settle(session_maker, clock)).block_number for _ in range(3)]

        assert numbers == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_reward_records_written(
        self, session_maker, make_participant, clock
    ):
        """Every included participant has one record per block."""
        alice = await make_participant("alice", 100)
        bob = await make_participant("bob", 300)

        await settle(session_maker, clock)

        async with session_maker() as session:
            result = await session.execute(
                select(BlockReward).order_by(BlockReward.participant_id)
            )
            records = list(result.scalars().all())

        assert [r.participant_id for r in records] == [alice, bob]
        assert [r.block_number for r in records] == [1, 1]
        assert records[0].base_amount == Decimal("25000")
        assert records[0].share_percent == Decimal("25")
        assert records[1].capacity == Decimal("300")

    @pytest.mark.asyncio
    async def test_zero_capacity_excluded(
        self, session_maker, make_participant, get_participant, clock
    ):
        """Participants without capacity get no record and no credit."""
        await make_participant("alice", 100)
        idle = await make_participant("idle", 0, balance="5")

        block = await settle(session_maker, clock)

        assert block.participant_count == 1
        assert (await get_participant(idle)).balance == Decimal("5")

    @pytest.mark.asyncio
    async def test_empty_network(self, session_maker, clock):
        """No contributors still settles an empty block."""
        block = await settle(session_maker, clock)

        assert block.block_number == 1
        assert block.participant_count == 0
        assert block.total_distributed == Decimal("0")
        assert await count_rows(session_maker, BlockReward) == 0

    @pytest.mark.asyncio
    async def test_truncation_remainder_recorded(
        self, session_maker, make_participant, clock
    ):
        """Three equal participants leave a remainder of 1."""
        for name in ("a", "b", "c"):
            await make_participant(name, 1)

        block = await settle(session_maker, clock)

        assert block.total_base == Decimal("99999")
        assert block.remainder == Decimal("1")


class TestBonusInputs:
    """Test multipliers read from the store."""

    @pytest.mark.asyncio
    async def test_prestige_and_boost(
        self, session_maker, make_participant, get_participant, clock, now
    ):
        """Prestige 4 plus a running 50% boost gives 1.7x."""
        alice = await make_participant(
            "alice",
            100,
            prestige_level=4,
            boosts=[("hashrate_boost", 50, now + timedelta(hours=1))],
        )
        bob = await make_participant("bob", 300)

        block = await settle(session_maker, clock)

        assert (await get_participant(alice)).balance == Decimal("42500")
        assert (await get_participant(bob)).balance == Decimal("75000")
        assert block.total_base == Decimal("100000")
        assert block.total_distributed == Decimal("117500")

    @pytest.mark.asyncio
    async def test_fractional_boost_credited_exactly(
        self, session_maker, make_participant, get_participant, clock, now
    ):
        """A 12.3456% boost on a 100000 base credits 112345."""
        alice = await make_participant(
            "alice",
            100,
            boosts=[("hashrate_boost", "12.3456", now + timedelta(hours=1))],
        )

        await settle(session_maker, clock)

        assert (await get_participant(alice)).balance == Decimal("112345")
        async with session_maker() as session:
            result = await session.execute(select(BlockReward))
            record = result.scalar_one()
        assert record.effective_multiplier == Decimal("1.123456")

    @pytest.mark.asyncio
    async def test_expired_boost_ignored(
        self, session_maker, make_participant, get_participant, clock, now
    ):
        """A boost that expired before the settlement instant does nothing."""
        alice = await make_participant(
            "alice",
            100,
            boosts=[("auto_miner", 50, now - timedelta(minutes=1))],
        )

        await settle(session_maker, clock)

        assert (await get_participant(alice)).balance == Decimal("100000")

    @pytest.mark.asyncio
    async def test_active_season(
        self, session_maker, make_participant, make_season, get_participant, clock
    ):
        """An active 1.10 season adds 10% to everyone."""
        alice = await make_participant("alice", 100)
        bob = await make_participant("bob", 300)
        await make_season("1.10")

        await settle(session_maker, clock)

        assert (await get_participant(alice)).balance == Decimal("27500")
        assert (await get_participant(bob)).balance == Decimal("82500")

    @pytest.mark.asyncio
    async def test_inactive_season_ignored(
        self, session_maker, make_participant, make_season, get_participant, clock
    ):
        """A season not flagged active is ignored."""
        alice = await make_participant("alice", 100)
        await make_season("2.0", is_active=False)

        await settle(session_maker, clock)

        assert (await get_participant(alice)).balance == Decimal("100000")

    @pytest.mark.asyncio
    async def test_malformed_participant_excluded(
        self, session_maker, make_participant, get_participant, clock
    ):
        """Corrupt bonus data excludes that participant only."""
        broken = await make_participant("broken", 100, prestige_level=-1)
        bob = await make_participant("bob", 300)

        block = await settle(session_maker, clock)

        assert block.participant_count == 1
        assert (await get_participant(broken)).balance == Decimal("0")
        assert (await get_participant(bob)).balance == Decimal("100000")


class TestCommitter:
    """Test atomic, idempotent commits."""

    @pytest.mark.asyncio
    async def test_duplicate_block_rejected(
        self, session_maker, make_participant, get_participant
    ):
        """Committing the same number twice credits only once."""
        alice = await make_participant("alice", 100)
        allocation = RewardAllocator(BLOCK_REWARD).allocate(
            [AllocationInput(participant_id=alice, capacity=Decimal("100"))]
        )

        async with session_maker() as session:
            await SettlementCommitter(session).commit(1, allocation)

        async with session_maker() as session:
            with pytest.raises(DuplicateSettlementError):
                await SettlementCommitter(session).commit(1, allocation)

        assert (await get_participant(alice)).balance == Decimal("100000")
        assert await count_rows(session_maker, Block) == 1
        assert await count_rows(session_maker, BlockReward) == 1

    @pytest.mark.asyncio
    async def test_partial_failure_rolls_back(
        self, session_maker, make_participant, get_participant
    ):
        """A failed credit leaves no block, no records and no balance change."""
        alice = await make_participant("alice", 100)
        allocation = RewardAllocator(BLOCK_REWARD).allocate(
            [
                AllocationInput(participant_id=alice, capacity=Decimal("100")),
                # Vanished between snapshot and commit
                AllocationInput(participant_id=9999, capacity=Decimal("100")),
            ]
        )

        async with session_maker() as session:
            with pytest.raises(SettlementError):
                await SettlementCommitter(session).commit(1, allocation)

        assert (await get_participant(alice)).balance == Decimal("0")
        assert await count_rows(session_maker, Block) == 0
        assert await count_rows(session_maker, BlockReward) == 0


class TestConcurrentBalanceChanges:
    """Test spends racing a settlement."""

    @pytest.mark.asyncio
    async def test_spend_between_snapshot_and_commit(
        self, session_maker, make_participant, get_participant, clock
    ):
        """Neither the spend nor the reward is lost."""
        alice = await make_participant("alice", 100, balance="500")

        async with session_maker() as session:
            service = SettlementService(session, BLOCK_REWARD, clock=clock)
            commit = service.committer.commit

            async def spend_then_commit(*args, **kwargs):
                async with session_maker() as other:
                    await BalanceService(other).spend(alice, Decimal("200"), "shop")
                return await commit(*args, **kwargs)

            service.committer.commit = spend_then_commit
            await service.settle_next_block()

        assert (await get_participant(alice)).balance == Decimal("100300")


class TestPauseSwitch:
    """Test the admin mining switch."""

    @pytest.mark.asyncio
    async def test_is_paused(self, session_maker, clock):
        """mining_paused=true pauses settlement."""
        async with session_maker() as session:
            service = SettlementService(session, BLOCK_REWARD, clock=clock)
            assert await service.is_paused() is False

            await GameSettingRepository(session).set_value("mining_paused", "true")
            await session.commit()

            assert await service.is_paused() is True
