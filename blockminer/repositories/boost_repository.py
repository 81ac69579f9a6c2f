"""
Boost repository.

Read-only access to power-ups owned by the power-up subsystem.
"""

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from blockminer.models.active_boost import ActiveBoost
from blockminer.models.participant import Participant
from blockminer.repositories.base import BaseRepository


class BoostRepository(BaseRepository[ActiveBoost]):
    """Active boost queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize boost repository."""
        super().__init__(ActiveBoost, session)

    async def get_unexpired_for_contributors(
        self,
        at: datetime,
        kinds: Sequence[str],
    ) -> list[ActiveBoost]:
        """
        Get boosts still running at a given instant for contributing participants.

        Args:
            at: Settlement timestamp; boosts with expires_at <= at are skipped
            kinds: Boost kinds to include

        Returns:
            Boosts ordered by participant ID
        """
        stmt = (
            select(ActiveBoost)
            .join(Participant, Participant.id == ActiveBoost.participant_id)
            .where(
                Participant.total_capacity > 0,
                ActiveBoost.is_active.is_(True),
                ActiveBoost.expires_at > at,
                ActiveBoost.kind.in_(list(kinds)),
            )
            .order_by(ActiveBoost.participant_id, ActiveBoost.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
