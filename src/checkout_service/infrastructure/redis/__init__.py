"""Redis connectivity for the readiness check.

Redis is the Celery broker for the email worker; the API only pings it.
"""

import redis.asyncio as aioredis
import structlog

from checkout_service.config import get_settings

logger = structlog.get_logger()

_client: aioredis.Redis | None = None


async def _connect(url: str) -> aioredis.Redis | None:
    client = aioredis.from_url(url, socket_connect_timeout=2, socket_timeout=2)
    try:
        await client.ping()
    except Exception as e:
        logger.warning("Redis unavailable, reminder worker broker unreachable", error=str(e))
        await client.aclose()
        return None
    logger.info("Redis connection established")
    return client


async def get_redis_client() -> aioredis.Redis | None:
    """Shared client, or None while Redis is unreachable (retried on the next call)."""
    global _client
    if _client is None:
        _client = await _connect(get_settings().redis_url)
    return _client


async def close_redis() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None


async def redis_healthy(client: aioredis.Redis | None) -> bool:
    if client is None:
        return False
    try:
        return bool(await client.ping())
    except Exception:
        return False
