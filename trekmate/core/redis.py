"""Redis client for short-lived application state."""

import json
import logging

import redis.asyncio as aioredis

from trekmate.core.config import settings

logger = logging.getLogger(__name__)

async_redis_pool = aioredis.ConnectionPool.from_url(
    str(settings.redis_url),
    decode_responses=True,
)


async def close_redis_pool() -> None:
    """Close Redis connection pool on shutdown."""
    await async_redis_pool.disconnect()


# Nearby-SOS event de-duplication
SOS_EVENT_PREFIX = "sos:nearby:"


def get_sos_event_key(sos_user_id: str, event_ts_ms: int) -> str:
    """Get Redis key for a single SOS event (user + event timestamp)."""
    return f"{SOS_EVENT_PREFIX}{sos_user_id}:{event_ts_ms}"


async def get_sos_event(key: str) -> list[str] | None:
    """Return the user ids already notified for an SOS event, if any."""
    async with aioredis.Redis(connection_pool=async_redis_pool) as client:
        raw = await client.get(key)
    if raw is None:
        return None
    try:
        return list(json.loads(raw))
    except (TypeError, ValueError):
        logger.warning(f"Corrupt SOS event record at {key}, ignoring")
        return None


async def store_sos_event(key: str, notified_user_ids: list[str]) -> None:
    """Remember which users were notified for an SOS event."""
    async with aioredis.Redis(connection_pool=async_redis_pool) as client:
        await client.setex(
            key,
            settings.sos_event_ttl_seconds,
            json.dumps(notified_user_ids),
        )


async def ping_redis() -> bool:
    async with aioredis.Redis(connection_pool=async_redis_pool) as client:
        return await client.ping()
