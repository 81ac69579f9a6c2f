"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from blockminer.models.active_boost import ActiveBoost
from blockminer.models.base import Base

# Settlement output
from blockminer.models.block import Block
from blockminer.models.block_reward import BlockReward

# External inputs
from blockminer.models.game_setting import GameSetting
from blockminer.models.participant import Participant
from blockminer.models.participant_prestige import ParticipantPrestige
from blockminer.models.season import Season

__all__ = [
    # Base
    "Base",
    # Settlement output
    "Block",
    "BlockReward",
    # External inputs
    "Participant",
    "ParticipantPrestige",
    "ActiveBoost",
    "Season",
    "GameSetting",
]
