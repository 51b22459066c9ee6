"""
Redis integration: trip capacity cache and seat change notifications.

CACHING STRATEGY
================

What we cache:
  - Trip seat capacity, key "trips:capacity:{trip_id}"

Why only capacity:
  - Capacity is fixed when the trip is created and never changes afterwards,
    so a cached value can't go stale in a way that matters
  - Seat status is NOT cached. The ledger must be read fresh on every
    request; a stale "available" would send users into guaranteed conflicts

NOTIFICATIONS
=============

After each committed mutation the engines publish a small JSON event on
"trips:{trip_id}:seats". Subscribers (seat map screens) use it as a hint to
re-read the snapshot. Delivery is best-effort: the activity log is the
durable change feed, pub/sub just makes it faster.

Redis is advisory everywhere: every function fails open and logs.
"""

import json
from typing import Any, Optional

import redis.asyncio as redis

from ticketing.core.config import get_settings
from ticketing.core.logging import get_logger
from ticketing.core.metrics import (
    record_cache_operation,
    record_notification,
    redis_connection_errors,
)

logger = get_logger(__name__)
settings = get_settings()

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled or down."""
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
            redis_connection_errors.inc()
            logger.error("redis_connection_failed", error=str(e))
            _redis_client = None
            return None

    return _redis_client


async def close_redis() -> None:
    global _redis_client
    if _redis_client:
        await _redis_client.close()
        _redis_client = None


def _capacity_key(trip_id: int) -> str:
    return f"trips:capacity:{trip_id}"


def seat_channel(trip_id: int) -> str:
    return f"{settings.SEAT_CHANNEL_PREFIX}:{trip_id}:seats"


async def get_cached_capacity(trip_id: int) -> Optional[int]:
    client = await get_redis()
    if not client:
        return None

    key = _capacity_key(trip_id)
    try:
        value = await client.get(key)
    except Exception as e:
        logger.error("cache_get_error", key=key, error=str(e))
        return None

    record_cache_operation("get", hit=value is not None)
    return int(value) if value is not None else None


async def set_cached_capacity(trip_id: int, capacity: int) -> None:
    client = await get_redis()
    if not client:
        return

    key = _capacity_key(trip_id)
    try:
        await client.setex(key, settings.TRIP_CACHE_TTL, capacity)
        logger.debug("cache_set", key=key, ttl=settings.TRIP_CACHE_TTL)
    except Exception as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def publish_seat_event(trip_id: int, event: str, **payload: Any) -> None:
    """Publish a committed seat change. Never raises."""
    client = await get_redis()
    if not client:
        return

    channel = seat_channel(trip_id)
    message = json.dumps({"event": event, "trip_id": trip_id, **payload}, default=str)
    try:
        receivers = await client.publish(channel, message)
        record_notification(sent=True)
        logger.debug("seat_event_published", channel=channel, event_name=event, receivers=receivers)
    except Exception as e:
        record_notification(sent=False)
        logger.error("seat_event_publish_failed", channel=channel, event_name=event, error=str(e))


async def get_cache_stats() -> dict:
    """Redis statistics for the health endpoint."""
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
