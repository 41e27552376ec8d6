"""
Redis caching utilities for public, read-only payloads
The cache is optional: every operation degrades to a miss when Redis is unavailable
"""

import json
import logging
from typing import Any, Optional

from .redis_client import get_redis_client

logger = logging.getLogger(__name__)


class Cache:
    """Redis cache wrapper with automatic serialization"""

    def __init__(self):
        self.redis_client = None
        self._unavailable = False

    def _get_client(self):
        """Lazy load Redis client"""
        if self._unavailable:
            return None
        if self.redis_client is None:
            try:
                self.redis_client = get_redis_client()
            except Exception as e:
                logger.warning(f"⚠️ Redis cache unavailable: {e}")
                self._unavailable = True
                return None
        return self.redis_client

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache"""
        client = self._get_client()
        if not client:
            return None

        try:
            value = client.get(key)
            if value:
                logger.debug(f"✅ Cache HIT: {key}")
                return json.loads(value)
            logger.debug(f"❌ Cache MISS: {key}")
            return None
        except Exception as e:
            logger.error(f"❌ Cache get error for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        """Set value in cache with TTL"""
        client = self._get_client()
        if not client:
            return False

        try:
            client.setex(key, ttl, json.dumps(value, default=str))
            logger.debug(f"✅ Cache SET: {key} (TTL: {ttl}s)")
            return True
        except Exception as e:
            logger.error(f"❌ Cache set error for {key}: {e}")
            return False

    def delete(self, *keys: str) -> bool:
        """Delete keys from cache"""
        client = self._get_client()
        if not client or not keys:
            return False

        try:
            client.delete(*keys)
            logger.debug(f"🗑️ Cache DELETE: {', '.join(keys)}")
            return True
        except Exception as e:
            logger.error(f"❌ Cache delete error for {keys}: {e}")
            return False

    def delete_pattern(self, pattern: str) -> int:
        """Delete all keys matching pattern (e.g., 'public:landing:*')"""
        client = self._get_client()
        if not client:
            return 0

        try:
            keys = list(client.scan_iter(match=pattern))
            if keys:
                deleted = client.delete(*keys)
                logger.debug(f"✅ Cache DELETE pattern: {pattern} ({deleted} keys)")
                return deleted
            return 0
        except Exception as e:
            logger.error(f"❌ Cache delete pattern error for {pattern}: {e}")
            return 0


cache = Cache()


def public_landing_key(identifier: str) -> str:
    return f"public:landing:{identifier}"
