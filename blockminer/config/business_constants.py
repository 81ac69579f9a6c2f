"""
Business logic constants for block settlement.

Central location for economy rules shared by the settlement pipeline and
the read-side query services.
"""

from decimal import Decimal

# Base reward minted per block (Phase 1 of the emission schedule)
BLOCK_REWARD = 100_000

# Settlement cadence: one block every 5 minutes
BLOCK_INTERVAL_SECONDS = 5 * 60

# Difficulty is constant; kept on the block row for explorer views
BLOCK_DIFFICULTY = 1

# Permanent bonus granted per prestige level (percent)
PRESTIGE_BONUS_PERCENT_PER_LEVEL = Decimal("5")

# Power-ups that raise effective capacity and therefore take part in the
# settlement multiplier. luck_boost is a reward-side power-up and is not one.
CAPACITY_BOOST_KINDS = ("hashrate_boost", "auto_miner")

# Game setting that pauses settlement when set to "true"
MINING_PAUSED_SETTING = "mining_paused"

# Lock key shared by every settlement trigger
SETTLEMENT_LOCK_KEY = "block_settlement"

# Default page size for the block explorer listing
DEFAULT_BLOCKS_PER_PAGE = 10
MAX_BLOCKS_PER_PAGE = 100
