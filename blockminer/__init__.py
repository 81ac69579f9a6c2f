"""
BlockMiner settlement engine.

Mines a block on a fixed cadence and distributes its reward across
participants in proportion to their capacity.
"""

__version__ = "1.0.0"
