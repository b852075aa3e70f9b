# ruff: noqa: PLW0603
"""Redis connection management.

Redis is optional: it backs the learning analytics cache. Services accept
``redis=None`` and simply skip caching when it is unavailable.
"""

import json
from typing import Any

import redis.asyncio as redis

from learntrack.config import get_settings
from learntrack.core.logging import get_logger


logger = get_logger(__name__)

_redis_client: redis.Redis | None = None


async def init_redis() -> redis.Redis:
    """Initialize the Redis connection pool and verify connectivity."""
    global _redis_client

    settings = get_settings()
    client = redis.from_url(
        settings.redis_url,
        max_connections=settings.redis_max_connections,
        socket_timeout=settings.redis_socket_timeout,
        socket_connect_timeout=settings.redis_socket_connect_timeout,
        retry_on_timeout=settings.redis_retry_on_timeout,
        health_check_interval=settings.redis_health_check_interval,
        decode_responses=True,
    )

    try:
        await client.ping()
    except redis.ConnectionError as e:
        logger.warning("redis_connection_failed", error=str(e))
        raise

    _redis_client = client
    logger.info("redis_connected", url=settings.redis_url)
    return _redis_client


async def shutdown_redis() -> None:
    """Close the Redis connection."""
    global _redis_client

    if _redis_client:
        await _redis_client.aclose()
        logger.info("redis_disconnected")
        _redis_client = None


def get_redis() -> redis.Redis | None:
    return _redis_client


# Cache key helpers
def analytics_cache_key(user_id: Any) -> str:
    return f"learntrack:analytics:{user_id}"


def streaks_cache_key(user_id: Any) -> str:
    return f"learntrack:streaks:{user_id}"


async def cache_get_json(client: redis.Redis | None, key: str) -> Any | None:
    """Read a JSON value from the cache, ``None`` on miss or without Redis."""
    if client is None:
        return None
    cached = await client.get(key)
    return json.loads(cached) if cached else None


async def cache_set_json(
    client: redis.Redis | None, key: str, value: Any, ttl_seconds: int
) -> None:
    if client is None:
        return
    await client.setex(key, ttl_seconds, json.dumps(value, default=str))


async def cache_delete(client: redis.Redis | None, *keys: str) -> None:
    if client is None or not keys:
        return
    await client.delete(*keys)
