"""
Block query service.

Read-side interface for collaborators: block explorer, statistics,
dashboards and "you earned X" notifications. Nothing here writes.
"""

from dataclasses import dataclass
from decimal import ROUND_DOWN, ROUND_FLOOR, Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from blockminer.config.business_constants import (
    DEFAULT_BLOCKS_PER_PAGE,
    MAX_BLOCKS_PER_PAGE,
)
from blockminer.models.block import Block
from blockminer.models.block_reward import BlockReward
from blockminer.repositories.block_repository import BlockRepository
from blockminer.repositories.block_reward_repository import (
    BlockRewardRepository,
)
from blockminer.repositories.participant_repository import (
    ParticipantRepository,
)


@dataclass(frozen=True)
class NetworkStats:
    """Network-wide mining statistics."""

    total_capacity: Decimal
    active_participants: int
    latest_block_number: int
    block_reward: Decimal


@dataclass(frozen=True)
class ParticipantNetworkStats:
    """A participant's position in the network."""

    participant_id: int
    capacity: Decimal
    total_network_capacity: Decimal
    active_participants: int
    network_share_percent: Decimal
    estimated_base_reward: Decimal


class BlockQueryService:
    """Queries over settled blocks and rewards."""

    def __init__(self, session: AsyncSession, block_reward: int | Decimal) -> None:
        """
        Initialize query service.

        Args:
            session: Database session
            block_reward: Current base pool per block, for estimates
        """
        self.session = session
        self.block_reward = Decimal(block_reward)
        self.block_repo = BlockRepository(session)
        self.reward_repo = BlockRewardRepository(session)
        self.participant_repo = ParticipantRepository(session)

    async def list_blocks(
        self,
        page: int = 1,
        per_page: int = DEFAULT_BLOCKS_PER_PAGE,
    ) -> tuple[list[Block], int]:
        """
        List blocks most recent first.

        Args:
            page: Page number (1-indexed, clamped to >= 1)
            per_page: Items per page (clamped to 1..MAX_BLOCKS_PER_PAGE)

        Returns:
            Tuple of (blocks, total_count)
        """
        page = max(page, 1)
        per_page = min(max(per_page, 1), MAX_BLOCKS_PER_PAGE)
        return await self.block_repo.list_recent(page=page, per_page=per_page)

    async def get_latest_block(self) -> Block | None:
        """Get the most recently settled block."""
        return await self.block_repo.get_latest()

    async def get_block(self, block_number: int) -> Block | None:
        """Get block by number."""
        return await self.block_repo.get_by_number(block_number)

    async def get_block_rewards(self, block_number: int) -> list[BlockReward]:
        """Get every reward record of a block."""
        return await self.reward_repo.get_by_block(block_number)

    async def get_participant_rewards(
        self,
        participant_id: int,
        limit: int = 50,
        offset: int = 0,
    ) -> list[BlockReward]:
        """
        Get a participant's reward history most recent first.

        Each record has its `block` loaded.
        """
        return await self.reward_repo.get_participant_history(
            participant_id, limit=limit, offset=max(offset, 0)
        )

    async def get_network_stats(self) -> NetworkStats:
        """Network capacity, active participants and latest block."""
        total_capacity, active = await self.participant_repo.get_network_capacity()
        latest = await self.block_repo.get_latest_number()
        return NetworkStats(
            total_capacity=total_capacity,
            active_participants=active,
            latest_block_number=latest,
            block_reward=self.block_reward,
        )

    async def get_participant_network_stats(
        self, participant_id: int
    ) -> ParticipantNetworkStats | None:
        """
        Participant share of the network and estimated base reward per block.

        Returns:
            Stats or None if participant does not exist
        """
        participant = await self.participant_repo.get_by_id(participant_id)
        if participant is None:
            return None

        total_capacity, active = await self.participant_repo.get_network_capacity()
        capacity = Decimal(participant.total_capacity)

        if total_capacity > 0 and capacity > 0:
            share = capacity / total_capacity
            share_percent = (share * 100).quantize(
                Decimal("0.0001"), rounding=ROUND_DOWN
            )
            estimated = (self.block_reward * share).to_integral_value(
                rounding=ROUND_FLOOR
            )
        else:
            share_percent = Decimal("0")
            estimated = Decimal("0")

        return ParticipantNetworkStats(
            participant_id=participant_id,
            capacity=capacity,
            total_network_capacity=total_capacity,
            active_participants=active,
            network_share_percent=share_percent,
            estimated_base_reward=estimated,
        )
