"""
BlockReward model.

Per-participant reward record of one block. Read by dashboards, the
statistics views and achievement checks.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from blockminer.models.base import Base
from blockminer.models.types import (
    CapacityType,
    MoneyType,
    MultiplierType,
    SharePercentType,
)

if TYPE_CHECKING:
    from blockminer.models.block import Block


class BlockReward(Base):
    """
    BlockReward entity.

    Attributes:
        block_id: Owning block
        block_number: Denormalized block height for history queries
        participant_id: Rewarded participant
        capacity: Capacity contributed at settlement time
        share_percent: capacity / total_capacity * 100 (display only)
        base_amount: Proportional share of the base pool (floored)
        effective_multiplier: Resolved bonus multiplier (>= 1)
        reward_amount: floor(base_amount * effective_multiplier), credited
    """

    __tablename__ = "block_rewards"
    __table_args__ = (
        UniqueConstraint(
            "block_number",
            "participant_id",
            name="uq_block_rewards_block_participant",
        ),
        Index(
            "idx_block_rewards_participant_block",
            "participant_id",
            "block_number",
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    block_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("blocks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    block_number: Mapped[int] = mapped_column(Integer, nullable=False)
    participant_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("participants.id", ondelete="CASCADE"),
        nullable=False,
    )
    capacity: Mapped[Decimal] = mapped_column(CapacityType, nullable=False)
    share_percent: Mapped[Decimal] = mapped_column(
        SharePercentType, nullable=False
    )
    base_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    effective_multiplier: Mapped[Decimal] = mapped_column(
        MultiplierType, default=Decimal("1"), nullable=False
    )
    reward_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    block: Mapped["Block"] = relationship("Block", back_populates="rewards")
