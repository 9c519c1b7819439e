"""
Redis caching service for event catalog listings.

CACHING STRATEGY
================
What we cache:
  - Event listing responses (paginated, JSON-serialized)
  - Cache key pattern: "events:list:page={page}&size={size}&category=...&upcoming=...&available=..."

Invalidation strategy:
  - Any catalog write (create, edit, delete, approved request) and any
    inventory change (purchase, cancel) deletes every "events:list:*" key
  - TTL-based expiry as safety net

What we never cache:
  - Single events and availability: the ticket service needs real-time
    counts, and a stale availability figure is misleading right at sell-out

Redis is optional. When disabled or unreachable every function degrades to a
no-op / cache miss and the request is served from the database.
"""

import json
from typing import Optional

import redis.asyncio as redis

from college_events.core.config import get_settings
from college_events.core.logging import get_logger
from college_events.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

_redis_client: Optional[redis.Redis] = None

EVENT_LIST_PREFIX = "events:list:"


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


def make_event_list_key(
    page: int,
    page_size: int,
    category: Optional[str],
    upcoming_only: bool,
    available_only: bool,
) -> str:
    return (
        f"{EVENT_LIST_PREFIX}page={page}&size={page_size}&category={category or '*'}"
        f"&upcoming={upcoming_only}&available={available_only}"
    )


async def get_cached_events(key: str) -> Optional[dict]:
    """Retrieve a cached event list response."""
    client = await get_redis()
    if not client:
        return None

    try:
        data = await client.get(key)
        record_cache_operation("get", hit=data is not None)
        if data:
            logger.debug("cache_hit", key=key)
            return json.loads(data)
        logger.debug("cache_miss", key=key)
    except Exception as e:
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached_events(key: str, data: dict) -> None:
    """Cache an event list response with TTL."""
    client = await get_redis()
    if not client:
        return

    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except Exception as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_event_cache() -> None:
    """Delete every cached event listing (SCAN over the list prefix)."""
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{EVENT_LIST_PREFIX}*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", keys_deleted=deleted)
    except Exception as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for the health endpoint."""
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
