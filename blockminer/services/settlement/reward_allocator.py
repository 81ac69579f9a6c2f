"""
Reward allocator.

Splits a fixed block reward proportionally to capacity, then applies each
participant's multiplier:

    base(p)  = floor(total_reward * capacity(p) / total_capacity)
    final(p) = floor(base(p) * multiplier(p))

Multipliers are applied after the split, so a boosted participant can
never take base pool meant for someone else. The truncation remainder
(total_reward - sum(base)) is not redistributed or carried forward.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import ROUND_DOWN, ROUND_FLOOR, Decimal, localcontext

from loguru import logger

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")
SHARE_PERCENT_QUANTUM = Decimal("0.000001")


@dataclass(frozen=True)
class AllocationInput:
    """Capacity and resolved multiplier of one participant."""

    participant_id: int
    capacity: Decimal
    multiplier: Decimal = ONE


@dataclass(frozen=True)
class RewardShare:
    """Computed reward of one participant."""

    participant_id: int
    capacity: Decimal
    share_percent: Decimal
    base_amount: Decimal
    effective_multiplier: Decimal
    reward_amount: Decimal


@dataclass(frozen=True)
class BlockAllocation:
    """Result of splitting one block reward."""

    total_reward: Decimal
    total_capacity: Decimal
    shares: tuple[RewardShare, ...]

    @property
    def participant_count(self) -> int:
        return len(self.shares)

    @property
    def total_base(self) -> Decimal:
        return sum((s.base_amount for s in self.shares), ZERO)

    @property
    def total_distributed(self) -> Decimal:
        return sum((s.reward_amount for s in self.shares), ZERO)

    @property
    def remainder(self) -> Decimal:
        """Base pool lost to truncation (the whole pool for an empty block)."""
        return self.total_reward - self.total_base


class RewardAllocator:
    """Proportional split of a block reward."""

    def __init__(self, total_reward: int | Decimal) -> None:
        """
        Initialize allocator.

        Args:
            total_reward: Base pool of the block in whole units

        Raises:
            ValueError: If total_reward is negative
        """
        total_reward = Decimal(total_reward)
        if total_reward < 0:
            raise ValueError(f"Block reward must be >= 0, got {total_reward}")
        self.total_reward = total_reward.to_integral_value(rounding=ROUND_FLOOR)

    def allocate(self, inputs: Sequence[AllocationInput]) -> BlockAllocation:
        """
        Allocate the block reward.

        Args:
            inputs: Contributing participants (capacity > 0, multiplier >= 1)

        Returns:
            Block allocation; empty when total capacity is zero

        Raises:
            ValueError: If an input has non-positive capacity or multiplier < 1
        """
        for item in inputs:
            if item.capacity <= 0:
                raise ValueError(
                    f"Participant {item.participant_id} has non-positive "
                    f"capacity {item.capacity}"
                )
            if item.multiplier < ONE:
                raise ValueError(
                    f"Participant {item.participant_id} has multiplier "
                    f"{item.multiplier} below 1"
                )

        total_capacity = sum((item.capacity for item in inputs), ZERO)

        if total_capacity == 0:
            logger.info("No capacity on the network, allocating empty block")
            return BlockAllocation(
                total_reward=self.total_reward,
                total_capacity=ZERO,
                shares=(),
            )

        with localcontext() as ctx:
            # Room for reward * capacity without rounding before the floor
            ctx.prec = 60

            shares = tuple(
                self._share(item, total_capacity) for item in inputs
            )

        allocation = BlockAllocation(
            total_reward=self.total_reward,
            total_capacity=total_capacity,
            shares=shares,
        )

        logger.debug(
            "Block reward allocated",
            extra={
                "participants": allocation.participant_count,
                "total_base": str(allocation.total_base),
                "total_distributed": str(allocation.total_distributed),
                "remainder": str(allocation.remainder),
            },
        )
        return allocation

    def _share(
        self, item: AllocationInput, total_capacity: Decimal
    ) -> RewardShare:
        base_amount = (
            self.total_reward * item.capacity / total_capacity
        ).to_integral_value(rounding=ROUND_FLOOR)
        reward_amount = (base_amount * item.multiplier).to_integral_value(
            rounding=ROUND_FLOOR
        )
        share_percent = (item.capacity / total_capacity * HUNDRED).quantize(
            SHARE_PERCENT_QUANTUM, rounding=ROUND_DOWN
        )
        return RewardShare(
            participant_id=item.participant_id,
            capacity=item.capacity,
            share_percent=share_percent,
            base_amount=base_amount,
            effective_multiplier=item.multiplier,
            reward_amount=reward_amount,
        )
