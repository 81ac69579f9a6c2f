"""
ActiveBoost model.

Time-bounded power-ups owned by the power-up subsystem. Settlement reads
unexpired entries only and never deletes them.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    DECIMAL,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from blockminer.models.base import Base

if TYPE_CHECKING:
    from blockminer.models.participant import Participant


class ActiveBoost(Base):
    """
    ActiveBoost entity.

    Attributes:
        id: Primary key
        participant_id: Boosted participant
        kind: Power-up type (hashrate_boost, auto_miner, luck_boost)
        boost_percent: Bonus in percent (50 = +50%)
        activated_at: Activation time
        expires_at: Expiry time; the boost applies while expires_at > now
        is_active: Soft flag maintained by the power-up subsystem
    """

    __tablename__ = "active_boosts"
    __table_args__ = (
        Index(
            "idx_active_boosts_participant_active",
            "participant_id",
            "is_active",
            "expires_at",
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    participant_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("participants.id", ondelete="CASCADE"),
        nullable=False,
    )
    kind: Mapped[str] = mapped_column(String(50), nullable=False)
    boost_percent: Mapped[Decimal] = mapped_column(
        DECIMAL(10, 4), nullable=False
    )
    activated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )

    participant: Mapped["Participant"] = relationship(
        "Participant", back_populates="boosts"
    )
