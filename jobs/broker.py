"""
Dramatiq broker configuration.

Redis-based message broker for task queue.
"""

import dramatiq
from dramatiq.brokers.redis import RedisBroker
from dramatiq.middleware import CurrentMessage, ShutdownNotifications
from loguru import logger

from blockminer.config.settings import settings
from blockminer.utils.redis_utils import get_redis_url_masked

# Initialize Redis broker with graceful shutdown middleware
redis_broker = RedisBroker(
    host=settings.redis_host,
    port=settings.redis_port,
    password=settings.redis_password if settings.redis_password else None,
    db=settings.redis_db,
)

# ShutdownNotifications: Allows workers to gracefully shutdown
# CurrentMessage: Provides access to current message in actors
# Retries stay at the default middleware; settlement actors opt out per actor
redis_broker.add_middleware(ShutdownNotifications())
redis_broker.add_middleware(CurrentMessage())

# Set as default broker
dramatiq.set_broker(redis_broker)

# Export broker
broker = redis_broker

logger.info(
    f"Dramatiq broker initialized with graceful shutdown support: "
    f"{get_redis_url_masked()}"
)
