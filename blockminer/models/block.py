"""
Block model.

One settlement event. Created exactly once per block number and never
modified afterwards.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Integer,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from blockminer.models.base import Base
from blockminer.models.types import CapacityType, MoneyType

if TYPE_CHECKING:
    from blockminer.models.block_reward import BlockReward


class Block(Base):
    """
    Block entity.

    Attributes:
        id: Primary key
        block_number: Unique, strictly increasing block height
        total_reward: Base pool split across participants
        total_base: Sum of unboosted base shares (never above total_reward)
        total_distributed: Sum of credited rewards (multiplier bonus included)
        total_capacity: Network capacity at settlement time
        participant_count: Participants with a reward record in this block
        difficulty: Constant difficulty shown in explorer views
        settled_at: Settlement timestamp shared by every multiplier lookup
    """

    __tablename__ = "blocks"
    __table_args__ = (
        CheckConstraint(
            "block_number > 0", name="check_block_number_positive"
        ),
        CheckConstraint(
            "participant_count >= 0",
            name="check_block_participant_count_non_negative",
        ),
        CheckConstraint(
            "total_base <= total_reward",
            name="check_block_base_within_reward",
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    # The unique constraint is what makes settlement idempotent
    block_number: Mapped[int] = mapped_column(
        Integer, unique=True, nullable=False, index=True
    )
    total_reward: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    total_base: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    total_distributed: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    total_capacity: Mapped[Decimal] = mapped_column(
        CapacityType, default=Decimal("0"), nullable=False
    )
    participant_count: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    difficulty: Mapped[int] = mapped_column(
        Integer, default=1, nullable=False
    )
    settled_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    rewards: Mapped[list["BlockReward"]] = relationship(
        "BlockReward", back_populates="block", lazy="raise"
    )

    @property
    def remainder(self) -> Decimal:
        """Base pool left undistributed by truncation."""
        return self.total_reward - self.total_base

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Block(number={self.block_number}, "
            f"participants={self.participant_count}, "
            f"distributed={self.total_distributed})>"
        )
