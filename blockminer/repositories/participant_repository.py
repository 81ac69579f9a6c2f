"""
Participant repository.

Data access layer for Participant model. Balance changes are always
relative deltas applied by the database, never read-then-write.
"""

from decimal import Decimal
from typing import NamedTuple

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from blockminer.models.participant import Participant
from blockminer.models.participant_prestige import ParticipantPrestige
from blockminer.repositories.base import BaseRepository


class CapacityRow(NamedTuple):
    """Participant identity and settlement inputs read in one statement."""

    participant_id: int
    capacity: Decimal
    prestige_level: int | None


class ParticipantRepository(BaseRepository[Participant]):
    """Participant repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize participant repository."""
        super().__init__(Participant, session)

    async def get_contributing(self) -> list[CapacityRow]:
        """
        Get every participant with capacity > 0.

        Prestige level is joined in the same statement so identity,
        capacity and permanent bonus come from one consistent read.

        Returns:
            Rows ordered by participant ID
        """
        stmt = (
            select(
                Participant.id,
                Participant.total_capacity,
                ParticipantPrestige.prestige_level,
            )
            .outerjoin(
                ParticipantPrestige,
                ParticipantPrestige.participant_id == Participant.id,
            )
            .where(Participant.total_capacity > 0)
            .order_by(Participant.id)
        )
        result = await self.session.execute(stmt)
        return [CapacityRow(*row) for row in result.all()]

    async def credit_reward(
        self, participant_id: int, amount: Decimal
    ) -> bool:
        """
        Add a settlement reward to balance and lifetime earnings.

        Args:
            participant_id: Participant ID
            amount: Reward amount (> 0)

        Returns:
            True if a row was updated
        """
        stmt = (
            update(Participant)
            .where(Participant.id == participant_id)
            .values(
                balance=Participant.balance + amount,
                total_earned=Participant.total_earned + amount,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def increment_balance(
        self, participant_id: int, amount: Decimal
    ) -> bool:
        """
        Add amount to balance without touching lifetime earnings.

        Args:
            participant_id: Participant ID
            amount: Amount to add (> 0)

        Returns:
            True if a row was updated
        """
        stmt = (
            update(Participant)
            .where(Participant.id == participant_id)
            .values(balance=Participant.balance + amount)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def decrement_balance(
        self, participant_id: int, amount: Decimal
    ) -> bool:
        """
        Subtract amount from balance if it is covered.

        The coverage check and the decrement are one statement, so a
        concurrent credit is never lost and the balance never goes negative.

        Args:
            participant_id: Participant ID
            amount: Amount to subtract (> 0)

        Returns:
            True if the balance covered the amount and was decremented
        """
        stmt = (
            update(Participant)
            .where(
                Participant.id == participant_id,
                Participant.balance >= amount,
            )
            .values(balance=Participant.balance - amount)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def get_network_capacity(self) -> tuple[Decimal, int]:
        """
        Sum capacity over contributing participants.

        Returns:
            Tuple of (total_capacity, active_participants)
        """
        stmt = select(
            func.coalesce(func.sum(Participant.total_capacity), 0),
            func.count(Participant.id),
        ).where(Participant.total_capacity > 0)
        result = await self.session.execute(stmt)
        total, count = result.one()
        return Decimal(str(total)), count
