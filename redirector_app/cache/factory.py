"""
Builds the cache that memoises short code / alias -> original URL lookups
for the redirect endpoint.
"""

import logging
from enum import Enum
from .strategies import CacheStrategy, RedisCache, InMemoryCache, NullCache
from redirector_app.config import settings

logger = logging.getLogger(__name__)


class CacheBackend(Enum):
    """Where redirect targets are memoised"""
    REDIS = "redis"
    MEMORY = "memory"
    NULL = "null"


class CacheFactory:
    """
    Holds the one redirect cache shared by every request in the process.

    An unreachable Redis degrades to the in-memory backend so redirects keep
    working, served from the database on every miss.
    """

    _instance: CacheStrategy = None

    @classmethod
    def create(cls, backend: CacheBackend) -> CacheStrategy:
        if cls._instance is None:
            cls._instance = cls._build(backend)
        return cls._instance

    @classmethod
    def _build(cls, backend: CacheBackend) -> CacheStrategy:
        if backend == CacheBackend.REDIS:
            return cls._connect_redis()
        if backend == CacheBackend.MEMORY:
            logger.info("Redirect cache: in-process memory")
            return InMemoryCache()
        if backend == CacheBackend.NULL:
            logger.info("Redirect cache disabled, every redirect hits the database")
            return NullCache()
        raise ValueError(f"Unknown cache backend: {backend}")

    @staticmethod
    def _connect_redis() -> CacheStrategy:
        import redis

        client = redis.from_url(
            settings.redis_url,
            decode_responses=False,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            client.ping()
        except redis.RedisError as e:
            logger.warning("Redis at %s unreachable (%s), memoising redirects in memory", settings.redis_url, e)
            return InMemoryCache()

        logger.info("Redirect cache: redis at %s", settings.redis_url)
        return RedisCache(client)

    @classmethod
    def clear_instance(cls):
        """Forget the shared cache so the next create() builds a new one"""
        cls._instance = None
