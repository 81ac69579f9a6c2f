"""
Balance service.

Spend/credit path used outside settlement (shop purchases, refunds).
Every mutation is a relative delta applied by the database, so it
interleaves safely with settlement credits on the same participant.
"""

from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from blockminer.repositories.participant_repository import (
    ParticipantRepository,
)
from blockminer.utils.db_decorators import with_rollback_on_error
from blockminer.utils.exceptions import InsufficientBalanceError


class BalanceService:
    """Atomic balance spend and credit."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize balance service.

        Args:
            session: Database session
        """
        self.session = session
        self.participant_repo = ParticipantRepository(session)

    @staticmethod
    def _validate_amount(amount: Decimal) -> Decimal:
        amount = Decimal(amount)
        if not amount.is_finite() or amount <= 0:
            raise ValueError(f"Amount must be positive, got {amount}")
        return amount

    @with_rollback_on_error
    async def spend(
        self, participant_id: int, amount: Decimal, reason: str = ""
    ) -> None:
        """
        Deduct amount from balance and commit.

        Args:
            participant_id: Participant ID
            amount: Amount to deduct (> 0)
            reason: Free-form description for the log

        Raises:
            ValueError: If amount is not positive
            InsufficientBalanceError: If the balance does not cover amount
        """
        amount = self._validate_amount(amount)

        if not await self.participant_repo.decrement_balance(
            participant_id, amount
        ):
            raise InsufficientBalanceError(participant_id, amount)

        await self.session.commit()

        logger.info(
            "Balance spent",
            extra={
                "participant_id": participant_id,
                "amount": str(amount),
                "reason": reason,
            },
        )

    @with_rollback_on_error
    async def credit(
        self, participant_id: int, amount: Decimal, reason: str = ""
    ) -> None:
        """
        Add amount to balance and commit.

        Args:
            participant_id: Participant ID
            amount: Amount to add (> 0)
            reason: Free-form description for the log

        Raises:
            ValueError: If amount is not positive or participant is unknown
        """
        amount = self._validate_amount(amount)

        if not await self.participant_repo.increment_balance(
            participant_id, amount
        ):
            raise ValueError(f"Participant {participant_id} not found")

        await self.session.commit()

        logger.info(
            "Balance credited",
            extra={
                "participant_id": participant_id,
                "amount": str(amount),
                "reason": reason,
            },
        )
