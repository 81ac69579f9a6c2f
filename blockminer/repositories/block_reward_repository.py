"""
Block reward repository.

Data access layer for BlockReward model.
"""

from typing import Any

from sqlalchemy import insert, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from blockminer.models.block_reward import BlockReward
from blockminer.repositories.base import BaseRepository


class BlockRewardRepository(BaseRepository[BlockReward]):
    """Block reward repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize block reward repository."""
        super().__init__(BlockReward, session)

    async def bulk_insert(self, items: list[dict[str, Any]]) -> int:
        """
        Insert reward rows in one executemany round trip.

        Args:
            items: List of column dicts

        Returns:
            Number of rows inserted
        """
        if not items:
            return 0

        await self.session.execute(insert(BlockReward), items)
        return len(items)

    async def get_by_block(self, block_number: int) -> list[BlockReward]:
        """
        Get every reward record of a block.

        Args:
            block_number: Block height

        Returns:
            Rewards ordered by participant ID
        """
        stmt = (
            select(BlockReward)
            .where(BlockReward.block_number == block_number)
            .order_by(BlockReward.participant_id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_participant_history(
        self,
        participant_id: int,
        limit: int = 50,
        offset: int = 0,
    ) -> list[BlockReward]:
        """
        Get a participant's rewards most recent first, with their block loaded.

        Args:
            participant_id: Participant ID
            limit: Max number of results
            offset: Number of results to skip

        Returns:
            Rewards with `block` populated
        """
        stmt = (
            select(BlockReward)
            .options(joinedload(BlockReward.block))
            .where(BlockReward.participant_id == participant_id)
            .order_by(BlockReward.block_number.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

