"""
Block settlement package.

This package provides the settlement pipeline:
- snapshot: Captures contributing participants and their bonus inputs
- multiplier_resolver: Resolves one effective multiplier per participant
- reward_allocator: Proportional split of the block reward
- settlement_committer: Atomic, idempotent persistence of a block
- settlement_service: Runs the pipeline for one block

All components are re-exported for easy importing.
"""

from blockminer.services.settlement.multiplier_resolver import (
    MultiplierResolver,
)
from blockminer.services.settlement.reward_allocator import (
    AllocationInput,
    BlockAllocation,
    RewardAllocator,
    RewardShare,
)
from blockminer.services.settlement.settlement_committer import (
    SettlementCommitter,
)
from blockminer.services.settlement.settlement_service import (
    SettlementService,
)
from blockminer.services.settlement.snapshot import (
    BoostInput,
    ParticipantSnapshotService,
    ParticipantState,
    SeasonInput,
    SettlementSnapshot,
)

__all__ = [
    "AllocationInput",
    "BlockAllocation",
    "BoostInput",
    "MultiplierResolver",
    "ParticipantSnapshotService",
    "ParticipantState",
    "RewardAllocator",
    "RewardShare",
    "SeasonInput",
    "SettlementCommitter",
    "SettlementService",
    "SettlementSnapshot",
]
