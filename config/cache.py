# config/cache.py
import logging
from typing import Optional
from redis.asyncio import Redis, from_url
from redis.exceptions import RedisError
from config.settings import settings

logger = logging.getLogger(__name__)

_client: Optional[Redis] = None


def _connect() -> Redis:
    return from_url(
        settings.REDIS_URL,
        decode_responses=False,  # prompt and key repositories decode their own JSON
        socket_connect_timeout=settings.REDIS_CONNECT_TIMEOUT_SECONDS,
        socket_keepalive=True,
        health_check_interval=30,
    )


async def get_redis() -> Redis:
    """
    Shared client for the prompt store, user keys and the rate limiter.
    The first call pings, so startup fails fast when Redis is unreachable
    and a failed attempt is retried on the next call.
    """
    global _client
    if _client is None:
        client = _connect()
        await client.ping()
        _client = client
        logger.info("redis.connected")
    return _client


async def redis_ok() -> bool:
    if _client is None:
        return False
    try:
        return bool(await _client.ping())
    except RedisError:
        logger.warning("redis.ping.failed")
        return False


async def close_redis() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
