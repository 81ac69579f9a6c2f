"""
Settlement service.

Runs the pipeline for one block inside one session:
snapshot -> resolve multipliers -> allocate -> commit.
"""

from collections.abc import Callable
from datetime import datetime
from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from blockminer.config.business_constants import MINING_PAUSED_SETTING
from blockminer.models.block import Block
from blockminer.repositories.block_repository import BlockRepository
from blockminer.repositories.game_setting_repository import (
    GameSettingRepository,
)
from blockminer.services.settlement.multiplier_resolver import (
    MultiplierResolver,
)
from blockminer.services.settlement.reward_allocator import (
    AllocationInput,
    RewardAllocator,
)
from blockminer.services.settlement.settlement_committer import (
    SettlementCommitter,
)
from blockminer.services.settlement.snapshot import (
    ParticipantSnapshotService,
    ParticipantState,
)
from blockminer.utils.datetime_utils import utc_now
from blockminer.utils.exceptions import (
    MultiplierResolutionError,
    TransientStoreError,
    is_transient_store_error,
)


class SettlementService:
    """Settles the next block."""

    def __init__(
        self,
        session: AsyncSession,
        block_reward: int | Decimal,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """
        Initialize settlement service.

        Args:
            session: Session used for every read and the final commit
            block_reward: Base pool of the block
            clock: Source of the settlement timestamp (read once per block)
        """
        self.session = session
        self.block_reward = block_reward
        self.clock = clock
        self.block_repo = BlockRepository(session)
        self.setting_repo = GameSettingRepository(session)
        self.snapshot_service = ParticipantSnapshotService(session)
        self.committer = SettlementCommitter(session)

    async def is_paused(self) -> bool:
        """Check the admin mining switch."""
        return await self.setting_repo.is_enabled(MINING_PAUSED_SETTING)

    async def settle_next_block(self) -> Block:
        """
        Settle the block following the latest committed one.

        Returns:
            Committed block

        Raises:
            DuplicateSettlementError: Another trigger committed this number first
            TransientStoreError: Store failure; retry on the next tick
            SettlementError: Block could not be written consistently
        """
        settled_at = self.clock()

        try:
            block_number = await self.block_repo.get_latest_number() + 1
            snapshot = await self.snapshot_service.take(settled_at)
        except Exception as e:
            if is_transient_store_error(e):
                await self.session.rollback()
                raise TransientStoreError(
                    f"Failed to read settlement inputs: {e}"
                ) from e
            raise

        logger.info(
            f"Settling block #{block_number}...",
            extra={
                "block_number": block_number,
                "participants": len(snapshot.participants),
                "settled_at": settled_at.isoformat(),
            },
        )

        resolver = MultiplierResolver(settled_at, season=snapshot.season)
        inputs = self.resolve_inputs(resolver, snapshot.participants)

        allocation = RewardAllocator(self.block_reward).allocate(inputs)

        return await self.committer.commit(
            block_number, allocation, settled_at=settled_at
        )

    @staticmethod
    def resolve_inputs(
        resolver: MultiplierResolver,
        participants: tuple[ParticipantState, ...],
    ) -> list[AllocationInput]:
        """
        Resolve multipliers, dropping participants with corrupt bonus data.

        One malformed participant never blocks the rest of the block.

        Args:
            resolver: Resolver bound to the settlement timestamp
            participants: Snapshot participants

        Returns:
            Allocation inputs for every resolvable participant
        """
        inputs = []
        for participant in participants:
            try:
                multiplier = resolver.resolve(participant)
            except MultiplierResolutionError as e:
                logger.bind(
                    participant_id=e.participant_id, reason=e.reason
                ).warning(f"Excluding participant from block: {e.reason}")
                continue

            inputs.append(
                AllocationInput(
                    participant_id=participant.participant_id,
                    capacity=participant.capacity,
                    multiplier=multiplier,
                )
            )
        return inputs
