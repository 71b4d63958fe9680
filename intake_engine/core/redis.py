# intake_engine/core/redis.py
"""
Redis connection and queue utilities.
Redis is used for:
- The outbound notification queue (fan-out to delivery workers)

The app should boot even if Redis is unavailable (degraded mode): notifications
are still persisted in the database, they just are not pushed to the queue.
"""

import logging
from functools import lru_cache
from typing import Optional

import redis

from intake_engine.core.config import get_settings

logger = logging.getLogger(__name__)


@lru_cache
def get_redis_client() -> Optional[redis.Redis]:
    """
    Get Redis client instance.
    Returns None if Redis is not configured or unavailable.
    """
    settings = get_settings()

    if not settings.redis_url:
        logger.warning("REDIS_URL not set. Notification queue will be disabled.")
        return None

    try:
        client = redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        # Test connection
        client.ping()
        logger.info("Redis connection established successfully.")
        return client
    except redis.RedisError as e:
        logger.warning(f"Failed to connect to Redis: {e}. Running in degraded mode (no queue).")
        return None


def queue_push(key: str, value: str) -> bool:
    """Push a message onto a Redis list. Returns False if Redis unavailable."""
    client = get_redis_client()
    if not client:
        return False
    try:
        client.lpush(key, value)
        return True
    except redis.RedisError as e:
        logger.warning(f"Redis LPUSH error for key '{key}': {e}")
        return False
