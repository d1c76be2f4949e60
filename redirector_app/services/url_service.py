import logging
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from redirector_app.cache.strategies import CacheStrategy
from redirector_app.config import settings
from redirector_app.models.url import URL
from redirector_app.schemas.url import URLWithStats
from redirector_app.services.exceptions import (
    AliasConflictError,
    RateLimitExceededError,
    ShortCodeGenerationError,
    URLGoneError,
    URLNotFoundError,
)
from redirector_app.services.short_code_strategies import RandomShortCodeStrategy, ShortCodeStrategy
from redirector_app.storage.visit_log import VisitLog

logger = logging.getLogger(__name__)


def cache_key(identifier: str) -> str:
    return f"url:{identifier}"


class URLService:
    """
    URL Service with dependency injection for cache and short code strategy.

    Short codes and aliases are interchangeable identifiers everywhere
    except update, where the alias is the value being assigned.
    """

    def __init__(
        self,
        db: Session,
        cache: Optional[CacheStrategy] = None,
        short_code_strategy: Optional[ShortCodeStrategy] = None,
    ):
        """
        Initialize URL service with dependencies.

        Args:
            db: Database session
            cache: Cache strategy (optional, for redirect performance)
            short_code_strategy: Code generator (defaults to random codes from settings)
        """
        self.db = db
        self.cache = cache
        self.visits = VisitLog(db)
        self.short_code_strategy = short_code_strategy or RandomShortCodeStrategy(
            length=settings.short_code_length,
            max_retries=settings.max_retries,
        )

    def _identifier_filter(self, identifier: str):
        return or_(URL.short_url == identifier, URL.alias == identifier)

    def _find_live(self, identifier: str) -> Optional[URL]:
        return self.db.query(URL).filter(
            self._identifier_filter(identifier),
            URL.deleted == False,
        ).first()

    def _find_any(self, identifier: str) -> Optional[URL]:
        # A live record wins over a deleted one holding the same alias
        return self.db.query(URL).filter(
            self._identifier_filter(identifier)
        ).order_by(URL.deleted.asc(), URL.id.desc()).first()

    async def _invalidate(self, *identifiers: Optional[str]):
        if not self.cache:
            return
        for identifier in {i for i in identifiers if i}:
            await self.cache.delete(cache_key(identifier))

    async def shorten_url(self, original_url: str) -> URL:
        """
        Create a new URL record with a fresh short code.

        A new record is created even if the same original URL was shortened
        before. The code is checked against existing codes and aliases by the
        strategy; an IntegrityError from a concurrent insert of the same code
        is retried as well.
        """
        for attempt in range(1, settings.max_retries + 1):
            short_url = self.short_code_strategy.generate(self.db)
            url = URL(original_url=original_url, short_url=short_url, access_count=0, deleted=False)
            self.db.add(url)
            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                logger.info("Short code collision on insert (attempt %d/%d)", attempt, settings.max_retries)
                continue
            self.db.refresh(url)
            logger.info("Created short URL %s -> %s", url.short_url, original_url[:80])
            return url

        raise ShortCodeGenerationError(
            f"Could not store a unique short code after {settings.max_retries} attempts"
        )

    async def update_alias(self, identifier: str, alias: str, rate_limit: Optional[int] = None) -> URL:
        """
        Set the alias and rate limit of the live record matching identifier.

        Raises:
            AliasConflictError: a different live record already answers to alias
            URLNotFoundError: no live record matches identifier
        """
        url = self._find_live(identifier)
        if url is None:
            raise URLNotFoundError(identifier)

        holder = self._find_live(alias)
        if holder is not None and holder.id != url.id:
            logger.warning("Alias %r requested for %s is held by %s", alias, url.short_url, holder.short_url)
            raise AliasConflictError(alias)

        old_alias = url.alias
        url.alias = alias
        url.rate_limit = rate_limit
        try:
            self.db.commit()
        except IntegrityError:
            # Lost a race with another update claiming the same alias
            self.db.rollback()
            raise AliasConflictError(alias)
        self.db.refresh(url)

        await self._invalidate(url.short_url, old_alias, alias)
        logger.info("Updated %s: alias=%r rate_limit=%r", url.short_url, alias, rate_limit)
        return url

    async def delete_url(self, identifier: str) -> URL:
        """
        Soft delete the live record matching identifier.

        The row and its visits stay in the database; redirects stop working.

        Raises:
            URLNotFoundError: no live record matches identifier
        """
        url = self._find_live(identifier)
        if url is None:
            raise URLNotFoundError(identifier)

        url.deleted = True
        self.db.commit()
        self.db.refresh(url)

        await self._invalidate(url.short_url, url.alias)
        logger.info("Soft deleted %s", url.short_url)
        return url

    async def redirect_url(
        self,
        identifier: str,
        ip: str,
        agent: Optional[str] = None,
        referer: Optional[str] = None,
    ) -> str:
        """
        Resolve identifier to its original URL and record the visit.

        Flow:
        1. Cache hit: return immediately. No counter increment and no
           visit row; only records without a rate limit are ever cached.
        2. Cache miss: look up by short code or alias (deleted included).
        3. Missing -> URLNotFoundError, deleted -> URLGoneError,
           quota used up -> RateLimitExceededError.
        4. Increment access_count with a conditional UPDATE that re-checks
           the quota in the same statement, stage the visit row, commit both
           together, then populate the cache under short code and alias.

        Raises:
            URLNotFoundError, URLGoneError, RateLimitExceededError
        """
        if self.cache:
            cached_url = await self.cache.get(cache_key(identifier))
            if cached_url:
                logger.debug("Redirect cache HIT for %s", identifier)
                return cached_url

        url = self._find_any(identifier)
        if url is None:
            raise URLNotFoundError(identifier)

        if url.deleted:
            logger.warning("Redirect refused, %s is deleted", identifier)
            raise URLGoneError(identifier)

        if url.has_rate_limit and url.access_count >= url.rate_limit:
            logger.warning("Redirect refused, %s reached its limit of %d", identifier, url.rate_limit)
            raise RateLimitExceededError(identifier, url.rate_limit)

        updated = self.db.query(URL).filter(
            URL.id == url.id,
            URL.deleted == False,
            or_(
                URL.rate_limit.is_(None),
                URL.rate_limit == 0,
                URL.access_count < URL.rate_limit,
            ),
        ).update({URL.access_count: URL.access_count + 1}, synchronize_session=False)

        if not updated:
            # A concurrent request deleted the record or used the last slot
            self.db.rollback()
            self.db.refresh(url)
            if url.deleted:
                raise URLGoneError(identifier)
            logger.warning("Redirect refused, %s reached its limit of %d", identifier, url.rate_limit)
            raise RateLimitExceededError(identifier, url.rate_limit)

        self.visits.append(url_id=url.id, ip=ip, agent=agent, referer=referer)
        self.db.commit()
        self.db.refresh(url)

        if self.cache and not url.has_rate_limit:
            await self.cache.set(cache_key(url.short_url), url.original_url, ttl=settings.cache_ttl)
            if url.alias:
                await self.cache.set(cache_key(url.alias), url.original_url, ttl=settings.cache_ttl)

        logger.info("Redirect cache MISS for %s, access_count=%d", identifier, url.access_count)
        return url.original_url

    async def get_urls(self) -> List[URLWithStats]:
        """
        Every URL record, deleted ones included, with its visits grouped by IP.
        """
        grouped = self.visits.grouped_by_url_and_ip()
        urls = self.db.query(URL).order_by(URL.id).all()

        return [
            URLWithStats(
                original_url=url.original_url,
                short_url=url.short_url,
                alias=url.alias,
                access_count=url.access_count,
                deleted=url.deleted,
                rate_limit=url.rate_limit,
                stats=grouped.get(url.id, {}),
            )
            for url in urls
        ]
