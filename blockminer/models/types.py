"""
Standard type definitions for database models.

Provides consistent types for monetary, capacity and percentage fields
across all models.
"""

from sqlalchemy import DECIMAL

# Standard money type for balances and rewards
# Precision: 18 digits total, 8 after decimal point
# Range: up to 9,999,999,999.99999999
MoneyType = DECIMAL(18, 8)

# Capacity (hashrate) contributed by a participant
# Precision: 20 digits total, 4 after decimal point
CapacityType = DECIMAL(20, 4)

# Effective reward multiplier (e.g. 1.123456 = +12.3456%)
# Precision: 12 digits total, 6 after decimal point; boost percents carry
# 4 places, so every resolved multiplier fits without rounding
MultiplierType = DECIMAL(12, 6)

# Share of the network as a display percentage (e.g. 25.000000%)
# Precision: 12 digits total, 6 after decimal point
SharePercentType = DECIMAL(12, 6)
