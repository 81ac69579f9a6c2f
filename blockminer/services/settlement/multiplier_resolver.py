"""
Multiplier resolver.

Turns the three stacking bonus inputs into one effective multiplier:

    multiplier = 1
                 + permanent_bonus_percent / 100   (prestige)
                 + season_bonus_percent / 100      (active season)
                 + sum(capacity boost_percent) / 100

Bonuses stack additively. Every participant of a block is evaluated
against the same settlement timestamp.
"""

from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal, InvalidOperation

from loguru import logger

from blockminer.config.business_constants import (
    CAPACITY_BOOST_KINDS,
    PRESTIGE_BONUS_PERCENT_PER_LEVEL,
)
from blockminer.services.settlement.snapshot import (
    BoostInput,
    ParticipantState,
    SeasonInput,
)
from blockminer.utils.datetime_utils import ensure_utc
from blockminer.utils.exceptions import MultiplierResolutionError

ONE = Decimal("1")
HUNDRED = Decimal("100")


def _to_decimal(value: object) -> Decimal | None:
    """Coerce to a finite Decimal, None if impossible."""
    if value is None or isinstance(value, bool):
        return None
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not result.is_finite():
        return None
    return result


class MultiplierResolver:
    """
    Resolves effective multipliers for one settlement.

    The resolver is a pure function of (participant state, settled_at,
    season); it never reads the clock.
    """

    def __init__(
        self,
        settled_at: datetime,
        season: SeasonInput | None = None,
        prestige_bonus_per_level: Decimal = PRESTIGE_BONUS_PERCENT_PER_LEVEL,
        capacity_boost_kinds: Iterable[str] = CAPACITY_BOOST_KINDS,
    ) -> None:
        """
        Initialize resolver.

        Args:
            settled_at: Settlement timestamp shared by the whole block
            season: Active season, if any
            prestige_bonus_per_level: Permanent bonus per prestige level (%)
            capacity_boost_kinds: Boost kinds that count toward the multiplier
        """
        self.settled_at = ensure_utc(settled_at)
        self.prestige_bonus_per_level = prestige_bonus_per_level
        self.capacity_boost_kinds = frozenset(capacity_boost_kinds)
        self.season_bonus_percent = self._season_bonus_percent(season)

    @staticmethod
    def _season_bonus_percent(season: SeasonInput | None) -> Decimal:
        """
        Season bonus in percent.

        A malformed season is ignored rather than raised: it is global,
        and failing it would exclude every participant of the block.
        """
        if season is None:
            return Decimal("0")

        multiplier = _to_decimal(season.bonus_multiplier)
        if multiplier is None or multiplier < ONE:
            logger.warning(
                "Ignoring malformed season multiplier",
                extra={
                    "season_id": season.season_id,
                    "bonus_multiplier": str(season.bonus_multiplier),
                },
            )
            return Decimal("0")

        return (multiplier - ONE) * HUNDRED

    def permanent_bonus_percent(self, participant: ParticipantState) -> Decimal:
        """
        Prestige bonus in percent.

        Raises:
            MultiplierResolutionError: If prestige level is malformed
        """
        level = participant.prestige_level
        if level is None:
            return Decimal("0")
        if isinstance(level, bool) or not isinstance(level, int) or level < 0:
            raise MultiplierResolutionError(
                participant.participant_id,
                f"invalid prestige level {level!r}",
            )
        return self.prestige_bonus_per_level * level

    def is_boost_running(self, boost: BoostInput) -> bool:
        """True if the boost has not expired at the settlement instant."""
        return ensure_utc(boost.expires_at) > self.settled_at

    def boost_percent(self, participant: ParticipantState) -> Decimal:
        """
        Sum of unexpired capacity boosts in percent.

        Raises:
            MultiplierResolutionError: If a boost is malformed
        """
        total = Decimal("0")
        for boost in participant.boosts:
            if boost.kind not in self.capacity_boost_kinds:
                continue

            if boost.expires_at is None:
                raise MultiplierResolutionError(
                    participant.participant_id,
                    f"{boost.kind} boost has no expiry",
                )
            if not self.is_boost_running(boost):
                continue

            percent = _to_decimal(boost.boost_percent)
            if percent is None or percent < 0:
                raise MultiplierResolutionError(
                    participant.participant_id,
                    f"invalid {boost.kind} boost percent {boost.boost_percent!r}",
                )
            total += percent
        return total

    def resolve(self, participant: ParticipantState) -> Decimal:
        """
        Resolve effective multiplier.

        Args:
            participant: Participant settlement inputs

        Returns:
            Exact multiplier >= 1 (no rounding before the reward floor)

        Raises:
            MultiplierResolutionError: If bonus data is malformed

        Example:
            >>> resolver.resolve(state_with_prestige_20_and_boost_50)
            Decimal("1.7")
        """
        bonus_percent = (
            self.permanent_bonus_percent(participant)
            + self.season_bonus_percent
            + self.boost_percent(participant)
        )
        return ONE + bonus_percent / HUNDRED
