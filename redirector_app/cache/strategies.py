"""
Cache strategies using Strategy Pattern.
Allows switching between different cache backends (Redis, In-Memory, Null).
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


class CacheStrategy(ABC):
    """
    Abstract base class for cache strategies.

    The redirect path memoizes identifier -> original URL here. Every method
    is async because the production backend does network I/O.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """
        Get value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found or expired
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: str, ttl: int = 600) -> bool:
        """
        Set value in cache with TTL (Time To Live).

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time to live in seconds

        Returns:
            True if successful, False otherwise
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """
        Delete key from cache.

        Returns:
            True if deleted, False if key didn't exist
        """
        pass

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check if key exists in cache"""
        pass

    @abstractmethod
    async def clear(self) -> bool:
        """Clear all cache entries"""
        pass


class RedisCache(CacheStrategy):
    """
    Redis cache implementation.

    Shared between all app processes. Errors are logged and reported as a
    miss (or a failed write) so a Redis outage degrades to uncached lookups
    instead of failing redirects.
    """

    def __init__(self, redis_client):
        """
        Initialize Redis cache.

        Args:
            redis_client: Redis client instance (redis.Redis)
        """
        self.redis = redis_client

    async def get(self, key: str) -> Optional[str]:
        try:
            value = self.redis.get(key)
            return value.decode('utf-8') if value else None
        except Exception as e:
            logger.warning("Redis get failed for %s: %s", key, e)
            return None

    async def set(self, key: str, value: str, ttl: int = 600) -> bool:
        try:
            return bool(self.redis.setex(key, ttl, value))
        except Exception as e:
            logger.warning("Redis set failed for %s: %s", key, e)
            return False

    async def delete(self, key: str) -> bool:
        try:
            return bool(self.redis.delete(key))
        except Exception as e:
            logger.warning("Redis delete failed for %s: %s", key, e)
            return False

    async def exists(self, key: str) -> bool:
        try:
            return bool(self.redis.exists(key))
        except Exception as e:
            logger.warning("Redis exists failed for %s: %s", key, e)
            return False

    async def clear(self) -> bool:
        """Clear all Redis keys in the current database (use with caution!)"""
        try:
            self.redis.flushdb()
            return True
        except Exception as e:
            logger.warning("Redis flush failed: %s", e)
            return False


class InMemoryCache(CacheStrategy):
    """
    In-memory cache implementation using a dict of (value, expires_at).

    Expired entries are dropped lazily on read. Not shared between
    processes, so it suits development, tests and single-worker deployments.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        """
        Args:
            clock: Monotonic time source in seconds (injectable for tests)
        """
        self._cache: Dict[str, Tuple[str, float]] = {}
        self._clock = clock

    def _live_entry(self, key: str) -> Optional[str]:
        entry = self._cache.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._cache[key]
            return None
        return value

    async def get(self, key: str) -> Optional[str]:
        return self._live_entry(key)

    async def set(self, key: str, value: str, ttl: int = 600) -> bool:
        self._cache[key] = (value, self._clock() + ttl)
        return True

    async def delete(self, key: str) -> bool:
        if key in self._cache:
            del self._cache[key]
            return True
        return False

    async def exists(self, key: str) -> bool:
        return self._live_entry(key) is not None

    async def clear(self) -> bool:
        self._cache.clear()
        return True


class NullCache(CacheStrategy):
    """
    Null Object Pattern - cache that does nothing.

    Every redirect goes to the database. Used to disable caching.
    """

    async def get(self, key: str) -> Optional[str]:
        """Always returns None (cache miss)"""
        return None

    async def set(self, key: str, value: str, ttl: int = 600) -> bool:
        return True

    async def delete(self, key: str) -> bool:
        return True

    async def exists(self, key: str) -> bool:
        return False

    async def clear(self) -> bool:
        return True
