import json
import logging

import redis.asyncio as redis
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.config import settings

logger = logging.getLogger(__name__)

# Session.info key holding the key patterns to purge after commit.
PENDING_INVALIDATIONS = "cache_invalidations"


class CacheManager:
    """
    Cache-aside store for rendered JSON:API documents, backed by Redis.

    All public methods are safe to call even when Redis is unavailable:
    read operations return None and write operations are skipped, so the
    API keeps serving straight from the database.
    """

    def __init__(self) -> None:
        self._redis: redis.Redis | None = None
        self._hits: int = 0
        self._misses: int = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the connection pool.  Called once at application startup."""
        self._redis = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            await self._redis.ping()
            logger.info("Redis connected: %s", settings.REDIS_URL)
        except redis.RedisError as exc:
            logger.warning("Redis ping failed, cache disabled: %s", exc)
            await self._redis.aclose()
            self._redis = None

    async def disconnect(self) -> None:
        """Close the connection pool.  Called once at application shutdown."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    # ------------------------------------------------------------------
    # Core cache operations
    # ------------------------------------------------------------------

    async def get(self, key: str) -> dict | None:
        """Return the cached document for *key*, or None on a miss / error."""
        if not self._redis:
            self._misses += 1
            return None
        try:
            data = await self._redis.get(key)
        except redis.RedisError as exc:
            logger.debug("Cache GET error for key=%r: %s", key, exc)
            self._misses += 1
            return None
        if data is None:
            self._misses += 1
            return None
        self._hits += 1
        return json.loads(data)

    async def set(self, key: str, value: dict, ttl: int | None = None) -> None:
        """
        Persist *value* under *key* with an optional TTL (seconds).

        Redis failures are logged but never propagated.
        """
        if not self._redis:
            return
        try:
            await self._redis.set(key, json.dumps(value), ex=ttl)
        except redis.RedisError as exc:
            logger.debug("Cache SET error for key=%r: %s", key, exc)

    async def delete_pattern(self, pattern: str) -> None:
        """Delete all keys matching *pattern* using SCAN (avoids blocking KEYS)."""
        if not self._redis:
            return
        try:
            keys = [key async for key in self._redis.scan_iter(match=pattern)]
            if keys:
                await self._redis.delete(*keys)
                logger.debug("Cache invalidated %d key(s) matching %r", len(keys), pattern)
        except redis.RedisError as exc:
            logger.debug("Cache DELETE_PATTERN error for pattern=%r: %s", pattern, exc)

    # ------------------------------------------------------------------
    # Commit-time invalidation
    #
    # Writes only queue key patterns on the session; get_db purges them
    # after the transaction commits and drops them on rollback.
    # ------------------------------------------------------------------

    def invalidate_on_commit(self, db: AsyncSession, *patterns: str) -> None:
        db.info.setdefault(PENDING_INVALIDATIONS, set()).update(patterns)

    def invalidate_article(self, db: AsyncSession, article_id: int | None = None) -> None:
        """
        Queue every list page, plus every detail document of *article_id*
        (one per include combination) when given.
        """
        patterns = ["articles:list:*"]
        if article_id is not None:
            patterns.append(f"articles:detail:{article_id}:*")
        self.invalidate_on_commit(db, *patterns)

    def invalidate_articles(self, db: AsyncSession) -> None:
        """Queue every article document, e.g. after an embedded user changed."""
        self.invalidate_on_commit(db, "articles:*")

    async def apply_pending(self, db: AsyncSession) -> None:
        for pattern in sorted(db.info.pop(PENDING_INVALIDATIONS, ())):
            await self.delete_pattern(pattern)

    def discard_pending(self, db: AsyncSession) -> None:
        db.info.pop(PENDING_INVALIDATIONS, None)

    @property
    def stats(self) -> dict:
        """Snapshot of hit/miss counters, reported by the health endpoint."""
        total = self._hits + self._misses
        return {
            "enabled": self._redis is not None,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
        }


# Module-level singleton shared across all request handlers.
cache = CacheManager()
