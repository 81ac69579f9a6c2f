"""
Logging setup.

Configures loguru sinks for the settlement worker.
Sets up log rotation and retention policies.
"""

import sys

from loguru import logger

from blockminer.config.settings import settings


def setup_logging() -> None:
    """Configure stderr and rotating file sinks."""
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)
    logger.add(
        settings.log_file,
        rotation="1 day",
        retention="7 days",
        level=settings.log_level,
        encoding="utf-8",
    )

    logger.info("Starting block settlement worker...")
