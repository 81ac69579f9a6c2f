"""
Participant snapshot.

Captures every contributing participant together with the bonus inputs
that apply at the settlement instant. The read goes through the session
that later commits the block, so capacity is read and rewarded inside one
transaction.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from blockminer.config.business_constants import CAPACITY_BOOST_KINDS
from blockminer.repositories.boost_repository import BoostRepository
from blockminer.repositories.participant_repository import (
    ParticipantRepository,
)
from blockminer.repositories.season_repository import SeasonRepository


@dataclass(frozen=True)
class BoostInput:
    """One power-up as seen by the settlement."""

    kind: str
    boost_percent: Decimal | None
    expires_at: datetime | None


@dataclass(frozen=True)
class ParticipantState:
    """Settlement inputs of one participant."""

    participant_id: int
    capacity: Decimal
    prestige_level: int | None = None
    boosts: tuple[BoostInput, ...] = ()


@dataclass(frozen=True)
class SeasonInput:
    """Active season multiplier (1.25 = +25%)."""

    season_id: str
    bonus_multiplier: Decimal | None


@dataclass(frozen=True)
class SettlementSnapshot:
    """Everything the allocation needs, frozen at one instant."""

    settled_at: datetime
    participants: tuple[ParticipantState, ...] = field(default_factory=tuple)
    season: SeasonInput | None = None

    @property
    def total_capacity(self) -> Decimal:
        """Sum of captured capacity."""
        return sum(
            (p.capacity for p in self.participants), Decimal("0")
        )


class ParticipantSnapshotService:
    """Reads settlement inputs through the settlement session."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize snapshot service.

        Args:
            session: Session shared with the committer
        """
        self.session = session
        self.participant_repo = ParticipantRepository(session)
        self.boost_repo = BoostRepository(session)
        self.season_repo = SeasonRepository(session)

    async def take(self, settled_at: datetime) -> SettlementSnapshot:
        """
        Capture contributing participants at the settlement instant.

        Zero-capacity participants are excluded entirely. Boosts are
        filtered against `settled_at`, never against a fresh clock read.

        Args:
            settled_at: Settlement timestamp

        Returns:
            Frozen snapshot
        """
        rows = await self.participant_repo.get_contributing()
        boosts = await self.boost_repo.get_unexpired_for_contributors(
            settled_at, CAPACITY_BOOST_KINDS
        )
        season = await self.season_repo.get_active(settled_at)

        boosts_by_participant: dict[int, list[BoostInput]] = defaultdict(list)
        for boost in boosts:
            boosts_by_participant[boost.participant_id].append(
                BoostInput(
                    kind=boost.kind,
                    boost_percent=boost.boost_percent,
                    expires_at=boost.expires_at,
                )
            )

        participants = tuple(
            ParticipantState(
                participant_id=row.participant_id,
                capacity=Decimal(row.capacity),
                prestige_level=row.prestige_level,
                boosts=tuple(boosts_by_participant.get(row.participant_id, ())),
            )
            for row in rows
        )

        season_input = None
        if season is not None:
            season_input = SeasonInput(
                season_id=season.season_id,
                bonus_multiplier=season.bonus_multiplier,
            )

        logger.debug(
            "Settlement snapshot taken",
            extra={
                "settled_at": settled_at.isoformat(),
                "participants": len(participants),
                "boosts": len(boosts),
                "season": season_input.season_id if season_input else None,
            },
        )

        return SettlementSnapshot(
            settled_at=settled_at,
            participants=participants,
            season=season_input,
        )
