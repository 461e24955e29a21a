import json
import logging
from typing import TYPE_CHECKING

import redis.asyncio as redis

from app.config import settings

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

BOARDS_KEY = "enums:boards"
KEYWORDS_KEY = "enums:keywords"
PENDING_INVALIDATIONS_KEY = "pending_cache_invalidations"


class CacheManager:
    """
    Cache-aside manager for the enum lookups (boards, keywords).

    Safe to call with Redis down: reads report a miss, writes and
    invalidations are skipped, and nothing is raised to the caller.
    """

    def __init__(self) -> None:
        self._redis: redis.Redis | None = None
        self._hits: int = 0
        self._misses: int = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        self._redis = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            await self._redis.ping()
            logger.info("Redis cache connected: %s", settings.REDIS_URL)
        except Exception as exc:  # pragma: no cover
            logger.warning("Redis ping failed, enum cache disabled: %s", exc)

    async def disconnect(self) -> None:
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    # ------------------------------------------------------------------
    # Core cache operations
    # ------------------------------------------------------------------

    async def get(self, key: str) -> dict | list | None:
        """Return the cached value for *key*, or None on a miss or error."""
        if not self._redis:
            self._misses += 1
            return None
        try:
            data = await self._redis.get(key)
        except Exception as exc:
            logger.debug("Cache GET error for key=%r: %s", key, exc)
            self._misses += 1
            return None
        if data is None:
            self._misses += 1
            return None
        self._hits += 1
        return json.loads(data)

    async def set(self, key: str, value: dict | list, ttl: int | None = None) -> None:
        if not self._redis:
            return
        try:
            await self._redis.set(key, json.dumps(value, default=str), ex=ttl)
        except Exception as exc:
            logger.debug("Cache SET error for key=%r: %s", key, exc)

    async def delete(self, *keys: str) -> None:
        if not self._redis or not keys:
            return
        try:
            await self._redis.delete(*keys)
            logger.debug("Cache invalidated %s", ", ".join(keys))
        except Exception as exc:
            logger.debug("Cache DELETE error for keys=%r: %s", keys, exc)

    @property
    def stats(self) -> dict:
        total = self._hits + self._misses
        return {
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
        }


# Module-level singleton shared across all request handlers.
cache = CacheManager()


# ---------------------------------------------------------------------------
# Invalidation deferred to commit
# ---------------------------------------------------------------------------
# Writers record the keys they make stale on the session; ``get_db`` drops
# them once the commit has succeeded.

def schedule_invalidation(db: "AsyncSession", *keys: str) -> None:
    db.info.setdefault(PENDING_INVALIDATIONS_KEY, set()).update(keys)


def pending_invalidations(db: "AsyncSession") -> list[str]:
    return sorted(db.info.get(PENDING_INVALIDATIONS_KEY, ()))


def discard_invalidations(db: "AsyncSession") -> None:
    db.info.pop(PENDING_INVALIDATIONS_KEY, None)


async def invalidate_pending(db: "AsyncSession") -> list[str]:
    """Delete and clear every key scheduled on *db*; returns the keys."""
    keys = sorted(db.info.pop(PENDING_INVALIDATIONS_KEY, ()))
    await cache.delete(*keys)
    return keys
