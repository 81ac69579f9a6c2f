"""
Season repository.

Read-only access to seasonal multipliers.
"""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from blockminer.models.season import Season
from blockminer.repositories.base import BaseRepository


class SeasonRepository(BaseRepository[Season]):
    """Season queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize season repository."""
        super().__init__(Season, session)

    async def get_active(self, at: datetime) -> Season | None:
        """
        Get the season active at a given instant.

        A season counts when it is flagged active and `at` falls inside its
        window. If the flag is set on several, the latest start wins.

        Args:
            at: Settlement timestamp

        Returns:
            Active season or None
        """
        stmt = (
            select(Season)
            .where(
                Season.is_active.is_(True),
                Season.start_date <= at,
                Season.end_date > at,
            )
            .order_by(Season.start_date.desc(), Season.id.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
