"""
Participant model.

A player taking part in block settlement. Capacity is maintained by the
equipment subsystem; balance is shared with the spend path and only ever
changed through relative deltas.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from blockminer.models.base import Base
from blockminer.models.types import CapacityType, MoneyType

if TYPE_CHECKING:
    from blockminer.models.active_boost import ActiveBoost
    from blockminer.models.participant_prestige import ParticipantPrestige


class Participant(Base):
    """Participant model - players contributing capacity."""

    __tablename__ = "participants"
    __table_args__ = (
        CheckConstraint(
            "balance >= 0", name="check_participant_balance_non_negative"
        ),
        CheckConstraint(
            "total_earned >= 0",
            name="check_participant_total_earned_non_negative",
        ),
        CheckConstraint(
            "total_capacity >= 0",
            name="check_participant_capacity_non_negative",
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    telegram_id: Mapped[int | None] = mapped_column(
        BigInteger, unique=True, index=True, nullable=True
    )
    username: Mapped[str] = mapped_column(String(255), nullable=False)

    # Balances
    balance: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    total_earned: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    # Owned by the equipment subsystem
    total_capacity: Mapped[Decimal] = mapped_column(
        CapacityType, default=Decimal("0"), nullable=False, index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    prestige: Mapped["ParticipantPrestige | None"] = relationship(
        "ParticipantPrestige",
        back_populates="participant",
        uselist=False,
        lazy="raise",
    )
    boosts: Mapped[list["ActiveBoost"]] = relationship(
        "ActiveBoost",
        back_populates="participant",
        lazy="raise",
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Participant(id={self.id}, username={self.username!r}, "
            f"capacity={self.total_capacity}, balance={self.balance})>"
        )
