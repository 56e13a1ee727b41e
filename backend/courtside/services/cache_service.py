"""
Redis caching service for venue rating summaries.

CACHING STRATEGY
================

What we cache:
  - The rating summary of one venue (count, mean, 1-5 histogram, weighted score)
  - Cache key pattern: "ratings:facility:{facility_id}"

Why:
  - Every venue card and venue page shows the rating
  - It only changes when a review is approved, rejected or removed

Invalidation strategy:
  - Moderation (approve/reject) deletes the venue's key
  - TTL-based expiry as safety net (5 minutes)

Helpful votes, flags and owner responses do not change the summary and do not
invalidate it.

Redis is optional: with REDIS_ENABLED=false or Redis down, every call falls
through to the database and the API keeps working.
"""

import json
from typing import Optional

import redis.asyncio as redis
from courtside.core.config import get_settings
from courtside.core.logging import get_logger
from courtside.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        try:
            _redis_client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
            await _redis_client.ping()
            logger.info("redis_connected", url=settings.REDIS_URL)
        except Exception as e:
            logger.error("redis_connection_failed", error=str(e))
            _redis_client = None
            return None

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def _make_rating_key(facility_id: int) -> str:
    return f"ratings:facility:{facility_id}"


async def get_cached_rating(facility_id: int) -> Optional[dict]:
    client = await get_redis()
    if not client:
        return None

    key = _make_rating_key(facility_id)
    try:
        data = await client.get(key)
        record_cache_operation("get", hit=bool(data))
        if data:
            logger.debug("cache_hit", key=key)
            return json.loads(data)
        logger.debug("cache_miss", key=key)
    except Exception as e:
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached_rating(facility_id: int, data: dict) -> None:
    client = await get_redis()
    if not client:
        return

    key = _make_rating_key(facility_id)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except Exception as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_rating_cache(facility_id: int) -> None:
    client = await get_redis()
    if not client:
        return

    key = _make_rating_key(facility_id)
    try:
        deleted = await client.delete(key)
        logger.info("cache_invalidated", key=key, keys_deleted=deleted)
    except Exception as e:
        logger.error("cache_invalidation_error", key=key, error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for monitoring."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        }
    except Exception as e:
        return {"status": "error", "error": str(e)}
