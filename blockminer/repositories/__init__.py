"""
Repositories package.

Data access layer for settlement inputs and outputs.
"""

from blockminer.repositories.base import BaseRepository
from blockminer.repositories.block_repository import BlockRepository
from blockminer.repositories.block_reward_repository import (
    BlockRewardRepository,
)
from blockminer.repositories.boost_repository import BoostRepository
from blockminer.repositories.game_setting_repository import (
    GameSettingRepository,
)
from blockminer.repositories.participant_repository import (
    ParticipantRepository,
)
from blockminer.repositories.season_repository import SeasonRepository

__all__ = [
    "BaseRepository",
    "BlockRepository",
    "BlockRewardRepository",
    "BoostRepository",
    "GameSettingRepository",
    "ParticipantRepository",
    "SeasonRepository",
]
