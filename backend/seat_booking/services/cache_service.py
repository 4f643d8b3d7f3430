"""
Redis caching for the two read views the client polls.

CACHING STRATEGY
================

What we cache:
  - Seat availability grid for a date, per viewer
      "availability:{date}:v={inventory_gen}.{date_gen}:employee={employee_id}"
  - An employee's paginated booking list
      "bookings:employee={employee_id}:v={gen}:page={p}&size={s}&status={st}&date={d}"

Generations:
  Each view family has a counter in Redis:
    - gen:inventory                      (seat inventory)
    - gen:availability:{date}            (bookings on that date)
    - gen:bookings:employee={id}         (that employee's bookings)
  A reader resolves the counters into its key BEFORE it queries the database.
  A mutation bumps the counters AFTER it commits. A read that raced a
  mutation therefore stores its (possibly old) result under a key nobody will
  ask for again, instead of overwriting the fresh view.

Invalidation contract:
  Every successful mutation of a booking (book, cancel, check-in, expiry)
  invalidates exactly the views it touched:
    - availability:{booking_date}:*        (every viewer of that date)
    - bookings:employee={employee_id}:*    (the booking owner's lists)
  Seat inventory changes (create/rename/delete) invalidate availability:*.
  Invalidating means bumping the generation and deleting the matching keys
  with SCAN + DEL. TTL-based expiry remains as a safety net (REDIS_CACHE_TTL).

Redis is advisory: when it is disabled or unreachable every call degrades to a
cache miss / no-op and the database stays authoritative.
"""

import json
from datetime import date
from typing import Optional

import redis.asyncio as redis

from seat_booking.core.config import get_settings
from seat_booking.core.logging import get_logger
from seat_booking.core.metrics import record_cache_operation

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


INVENTORY_GENERATION_KEY = "gen:inventory"


def availability_generation_key(booking_date: date) -> str:
    return f"gen:availability:{booking_date.isoformat()}"


def employee_bookings_generation_key(employee_id: int) -> str:
    return f"gen:bookings:employee={employee_id}"


def availability_key(booking_date: date, employee_id: int, version: str = "0.0") -> str:
    return f"availability:{booking_date.isoformat()}:v={version}:employee={employee_id}"


def employee_bookings_key(
    employee_id: int,
    page: int,
    page_size: int,
    status: Optional[str] = None,
    booking_date: Optional[date] = None,
    version: str = "0",
) -> str:
    date_part = booking_date.isoformat() if booking_date else ""
    return (
        f"bookings:employee={employee_id}:v={version}:"
        f"page={page}&size={page_size}&status={status or ''}&date={date_part}"
    )


def mutation_invalidation_patterns(booking_date: date, employee_id: int) -> list[str]:
    """Key patterns a booking mutation on (date, employee) must invalidate."""
    return [
        f"availability:{booking_date.isoformat()}:*",
        f"bookings:employee={employee_id}:*",
    ]


def mutation_generation_keys(booking_date: date, employee_id: int) -> list[str]:
    return [
        availability_generation_key(booking_date),
        employee_bookings_generation_key(employee_id),
    ]


INVENTORY_INVALIDATION_PATTERNS = ["availability:*"]


async def _read_generations(keys: list[str]) -> list[int]:
    client = await get_redis()
    if not client:
        return [0] * len(keys)

    try:
        values = await client.mget(keys)
    except Exception as e:
        record_cache_operation("generation", "error")
        logger.error("cache_generation_read_error", keys=keys, error=str(e))
        return [0] * len(keys)
    return [int(value) if value else 0 for value in values]


async def bump_generations(keys: list[str]) -> None:
    client = await get_redis()
    if not client:
        return

    try:
        async with client.pipeline(transaction=False) as pipe:
            for key in keys:
                pipe.incr(key)
            await pipe.execute()
    except Exception as e:
        record_cache_operation("generation", "error")
        logger.error("cache_generation_bump_error", keys=keys, error=str(e))


async def availability_cache_key(booking_date: date, employee_id: int) -> str:
    """Key for the grid, resolved against the current generations. Call before reading the DB."""
    inventory, day = await _read_generations(
        [INVENTORY_GENERATION_KEY, availability_generation_key(booking_date)]
    )
    return availability_key(booking_date, employee_id, f"{inventory}.{day}")


async def employee_bookings_cache_key(
    employee_id: int,
    page: int,
    page_size: int,
    status: Optional[str] = None,
    booking_date: Optional[date] = None,
) -> str:
    (generation,) = await _read_generations([employee_bookings_generation_key(employee_id)])
    return employee_bookings_key(
        employee_id, page, page_size, status, booking_date, version=str(generation)
    )


async def get_cached_view(key: str) -> Optional[object]:
    client = await get_redis()
    if not client:
        return None

    try:
        data = await client.get(key)
        if data:
            record_cache_operation("get", "hit")
            logger.debug("cache_hit", key=key)
            return json.loads(data)
        record_cache_operation("get", "miss")
        logger.debug("cache_miss", key=key)
    except Exception as e:
        record_cache_operation("get", "error")
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached_view(key: str, data: object) -> None:
    client = await get_redis()
    if not client:
        return

    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        record_cache_operation("set", "ok")
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except Exception as e:
        record_cache_operation("set", "error")
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_patterns(patterns: list[str]) -> int:
    client = await get_redis()
    if not client:
        return 0

    deleted = 0
    try:
        for pattern in patterns:
            async for key in client.scan_iter(match=pattern, count=100):
                await client.delete(key)
                deleted += 1
        record_cache_operation("invalidate", "ok")
        logger.info("cache_invalidated", patterns=patterns, keys_deleted=deleted)
    except Exception as e:
        record_cache_operation("invalidate", "error")
        logger.error("cache_invalidation_error", patterns=patterns, error=str(e))
    return deleted


async def invalidate_after_mutation(booking_date: date, employee_id: int) -> int:
    await bump_generations(mutation_generation_keys(booking_date, employee_id))
    return await invalidate_patterns(mutation_invalidation_patterns(booking_date, employee_id))


async def invalidate_inventory() -> int:
    await bump_generations([INVENTORY_GENERATION_KEY])
    return await invalidate_patterns(INVENTORY_INVALIDATION_PATTERNS)


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
