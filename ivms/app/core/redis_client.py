"""
Redis connection for IVMS.

Redis only holds token revocation flags (ivms.app.core.token_revocation).
Every authenticated request checks them, so the client uses a short
socket timeout (REDIS_SOCKET_TIMEOUT) and callers fail open on RedisError.
"""

import redis.asyncio as redis
from redis.exceptions import RedisError
from ivms.app.core.config import settings


redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
    socket_timeout=settings.redis_socket_timeout,
    socket_connect_timeout=settings.redis_socket_timeout,
)


async def get_redis():
    """Dependency returning the shared client (overridden in tests)."""
    return redis_client


async def ping_redis() -> bool:
    """True if Redis answers, for the /health endpoint."""
    try:
        return await redis_client.ping()
    except RedisError:
        return False
