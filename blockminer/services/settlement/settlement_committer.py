"""
Settlement committer.

Persists a block, its reward records and the matching balance credits as
one transaction. The unique constraint on blocks.block_number decides
whether the block is new; there is no read-then-write existence check.
"""

from datetime import datetime
from typing import NoReturn

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from blockminer.config.business_constants import BLOCK_DIFFICULTY
from blockminer.models.block import Block
from blockminer.repositories.block_reward_repository import (
    BlockRewardRepository,
)
from blockminer.repositories.participant_repository import (
    ParticipantRepository,
)
from blockminer.services.settlement.reward_allocator import BlockAllocation
from blockminer.utils.datetime_utils import utc_now
from blockminer.utils.exceptions import (
    DuplicateSettlementError,
    SettlementError,
    TransientStoreError,
    is_transient_store_error,
)


class SettlementCommitter:
    """Atomic, idempotent block commit."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize committer.

        Args:
            session: Database session; committed or rolled back by commit()
        """
        self.session = session
        self.reward_repo = BlockRewardRepository(session)
        self.participant_repo = ParticipantRepository(session)

    async def commit(
        self,
        block_number: int,
        allocation: BlockAllocation,
        settled_at: datetime | None = None,
    ) -> Block:
        """
        Commit one block.

        Either the block row, every reward row and every balance credit
        exist afterwards, or none of them do.

        Args:
            block_number: Height of the new block
            allocation: Allocated rewards
            settled_at: Settlement timestamp (defaults to now)

        Returns:
            Committed block

        Raises:
            DuplicateSettlementError: Block number already settled
            TransientStoreError: Store failure; nothing was written
            SettlementError: Block could not be written consistently
        """
        block = Block(
            block_number=block_number,
            total_reward=allocation.total_reward,
            total_base=allocation.total_base,
            total_distributed=allocation.total_distributed,
            total_capacity=allocation.total_capacity,
            participant_count=allocation.participant_count,
            difficulty=BLOCK_DIFFICULTY,
            settled_at=settled_at or utc_now(),
        )

        try:
            self.session.add(block)
            # Claims the block number; a concurrent or repeated commit fails here
            await self.session.flush()
        except IntegrityError as e:
            await self.session.rollback()
            logger.info(
                f"Block #{block_number} already settled, skipping commit",
                extra={"block_number": block_number},
            )
            raise DuplicateSettlementError(block_number) from e
        except Exception as e:
            await self._abort(block_number, e)

        try:
            await self.reward_repo.bulk_insert(
                [
                    {
                        "block_id": block.id,
                        "block_number": block_number,
                        "participant_id": share.participant_id,
                        "capacity": share.capacity,
                        "share_percent": share.share_percent,
                        "base_amount": share.base_amount,
                        "effective_multiplier": share.effective_multiplier,
                        "reward_amount": share.reward_amount,
                        "created_at": block.settled_at,
                    }
                    for share in allocation.shares
                ]
            )

            for share in allocation.shares:
                if share.reward_amount <= 0:
                    continue
                credited = await self.participant_repo.credit_reward(
                    share.participant_id, share.reward_amount
                )
                if not credited:
                    raise SettlementError(
                        f"Participant {share.participant_id} disappeared "
                        f"while settling block #{block_number}"
                    )

            await self.session.commit()
        except Exception as e:
            await self._abort(block_number, e)

        logger.info(
            f"Block #{block_number} committed: {allocation.total_distributed} "
            f"distributed to {allocation.participant_count} participants",
            extra={
                "block_number": block_number,
                "total_reward": str(allocation.total_reward),
                "total_base": str(allocation.total_base),
                "total_distributed": str(allocation.total_distributed),
                "remainder": str(allocation.remainder),
                "participants": allocation.participant_count,
            },
        )
        return block

    async def _abort(self, block_number: int, error: Exception) -> NoReturn:
        """Roll back and re-raise as a settlement error."""
        try:
            await self.session.rollback()
        except Exception as rollback_error:
            logger.error(
                f"Failed to rollback block #{block_number}: {rollback_error}",
                exc_info=True,
            )

        if isinstance(error, SettlementError):
            raise error

        if is_transient_store_error(error):
            # Driver text may contain braces; it must not reach str.format
            logger.bind(block_number=block_number, error=str(error)).warning(
                f"Store failure while committing block #{block_number}: {error}"
            )
            raise TransientStoreError(
                f"Block #{block_number} aborted: {error}"
            ) from error

        logger.bind(block_number=block_number, error=str(error)).error(
            f"Unexpected error committing block #{block_number}: {error}"
        )
        raise SettlementError(
            f"Block #{block_number} aborted: {error}"
        ) from error
