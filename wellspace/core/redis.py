# ruff: noqa: PLW0603
"""Redis connection management.

Redis holds short-lived state only: "post anyway" confirmations waiting for
the author's decision. Everything keeps working without it; pending
confirmations then live in process memory.
"""

import redis.asyncio as redis

from wellspace.config import Settings, get_settings
from wellspace.core.logging import get_logger


logger = get_logger(__name__)

_redis_client: redis.Redis | None = None


async def init_redis(settings: Settings | None = None) -> redis.Redis:
    """Create the connection pool and verify it with a PING.

    Raises:
        redis.ConnectionError: If the server cannot be reached.
    """
    global _redis_client

    settings = settings or get_settings()
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
        await client.aclose()
        raise

    _redis_client = client
    logger.info("redis_connected", url=settings.redis_url)
    return client


async def shutdown_redis() -> None:
    """Close the connection pool, if one was opened."""
    global _redis_client

    if _redis_client is None:
        return
    await _redis_client.aclose()
    _redis_client = None
    logger.info("redis_disconnected")


async def redis_is_healthy() -> bool:
    """PING the server; False when not connected or unreachable."""
    if _redis_client is None:
        return False
    try:
        return bool(await _redis_client.ping())
    except redis.RedisError as e:
        logger.warning("redis_ping_failed", error=str(e))
        return False
