"""
Season model.

Global, time-bounded reward multiplier owned by the seasonal-events
subsystem. At most one season is active at a time.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import DECIMAL, Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from blockminer.models.base import Base


class Season(Base):
    """Seasonal event with a reward multiplier (1.25 = +25%)."""

    __tablename__ = "seasons"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    season_id: Mapped[str] = mapped_column(
        String(100), unique=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    start_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    end_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    bonus_multiplier: Mapped[Decimal] = mapped_column(
        DECIMAL(6, 4), default=Decimal("1.0"), nullable=False
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
