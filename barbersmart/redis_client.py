"""
Redis connection used by the response cache
"""

import logging
import os
from typing import Optional

import redis

logger = logging.getLogger(__name__)

redis_client: Optional[redis.Redis] = None


def get_redis_client() -> redis.Redis:
    """
    Get or create Redis client
    Raises when REDIS_URL is not configured or the server is unreachable
    """
    global redis_client

    if redis_client is None:
        redis_url = os.getenv("REDIS_URL")
        if not redis_url:
            raise RuntimeError("REDIS_URL not configured")

        # Mask password in URL for logging
        if "@" in redis_url:
            url_parts = redis_url.split("@")
            protocol = url_parts[0].split(":")[0]
            masked_url = f"{protocol}:****@{url_parts[1]}"
        else:
            masked_url = "****"
        logger.info(f"📡 Using Redis URL connection: {masked_url}")

        try:
            client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=15,
                socket_timeout=30,
                retry_on_timeout=True,
                health_check_interval=30,
                max_connections=20,
            )
            client.ping()
            redis_client = client
            logger.info("Redis connected successfully via URL")
        except Exception as e:
            logger.error(f"❌ Failed to connect to Redis via URL: {str(e)}")
            raise

    return redis_client
