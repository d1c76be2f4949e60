"""
FastAPI dependencies for dependency injection.

Provides the singleton cache, the per-request URLService and the
client IP resolution used by the redirect endpoint.
"""

from functools import lru_cache

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from redirector_app.cache.factory import CacheFactory, CacheBackend
from redirector_app.cache.strategies import CacheStrategy
from redirector_app.database.connection import get_db
from redirector_app.config import settings


@lru_cache()
def get_cache() -> CacheStrategy:
    """
    Get cache instance (singleton).

    Factory gets config from settings internally.
    @lru_cache ensures this is called only once.
    """
    backend = CacheBackend(settings.cache_backend)
    return CacheFactory.create(backend)


def get_url_service(
    db: Session = Depends(get_db),
    cache: CacheStrategy = Depends(get_cache),
):
    """Get URLService with database session and cache injected."""
    from redirector_app.services.url_service import URLService
    return URLService(db=db, cache=cache)


def get_client_ip(request: Request) -> str:
    if settings.trust_proxy_headers:
        xff = request.headers.get("x-forwarded-for")
        if xff:
            return xff.split(",")[0].strip()
    return request.client.host if request.client else "unknown"
