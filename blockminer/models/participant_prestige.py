"""
ParticipantPrestige model.

Prestige level is owned by the prestige subsystem. Each level grants a
permanent reward bonus.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from blockminer.models.base import Base

if TYPE_CHECKING:
    from blockminer.models.participant import Participant


class ParticipantPrestige(Base):
    """Prestige record, one per participant."""

    __tablename__ = "participant_prestige"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    participant_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("participants.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    prestige_level: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    participant: Mapped["Participant"] = relationship(
        "Participant", back_populates="prestige"
    )
