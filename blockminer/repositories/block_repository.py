"""
Block repository.

Data access layer for Block model.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from blockminer.models.block import Block
from blockminer.repositories.base import BaseRepository


class BlockRepository(BaseRepository[Block]):
    """Block repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize block repository."""
        super().__init__(Block, session)

    async def get_by_number(self, block_number: int) -> Block | None:
        """
        Get block by number.

        Args:
            block_number: Block height

        Returns:
            Block or None
        """
        return await self.get_by(block_number=block_number)

    async def get_latest(self) -> Block | None:
        """
        Get the most recently settled block.

        Returns:
            Block with the highest number or None
        """
        stmt = select(Block).order_by(Block.block_number.desc()).limit(1)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_latest_number(self) -> int:
        """
        Get the highest settled block number.

        Returns:
            Block number, 0 if nothing settled yet
        """
        stmt = select(func.max(Block.block_number))
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def list_recent(
        self,
        page: int = 1,
        per_page: int = 10,
    ) -> tuple[list[Block], int]:
        """
        List blocks most recent first.

        Args:
            page: Page number (1-indexed)
            per_page: Items per page

        Returns:
            Tuple of (blocks, total_count)
        """
        total = await self.count()

        offset = (page - 1) * per_page
        stmt = (
            select(Block)
            .order_by(Block.block_number.desc())
            .offset(offset)
            .limit(per_page)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all()), total
