import logging
import secrets
from typing import Optional

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool

from app.api.core.config import settings
from app.api.core.logger import setup_logging

setup_logging()
logger = logging.getLogger("app")

_redis_client: Optional[redis.Redis] = None
_connection_pool: Optional[ConnectionPool] = None

OAUTH_STATE_PREFIX = "stripe_oauth_state"


async def get_redis_client() -> redis.Redis:
    """
    Lazily create the process-wide Redis client.

    Redis only holds short-lived Stripe Connect state tokens, so a small pool is enough.

    Raises:
        ValueError: If REDIS_URL is not configured
    """
    global _redis_client, _connection_pool
    if _redis_client is None:
        if not settings.REDIS_URL:
            raise ValueError("REDIS_URL is not configured")

        _connection_pool = ConnectionPool.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
            socket_connect_timeout=5,
            socket_timeout=10,
            socket_keepalive=True,
            retry_on_timeout=True,
            health_check_interval=30,
        )

        _redis_client = redis.Redis(connection_pool=_connection_pool)
        logger.info("Redis client initialized")
    return _redis_client


async def close_redis_client():
    """Close the Redis client connection and pool."""
    global _redis_client, _connection_pool
    if _redis_client:
        await _redis_client.close()
        _redis_client = None
    if _connection_pool:
        await _connection_pool.disconnect()
        _connection_pool = None
        logger.info("Redis client and connection pool closed")


# ==================== STRIPE CONNECT OAUTH STATE ====================


def _oauth_state_key(state: str) -> str:
    return f"{OAUTH_STATE_PREFIX}:{state}"


async def issue_oauth_state(user_id: str, ttl_seconds: Optional[int] = None) -> str:
    """
    Create a one-time Stripe Connect ``state`` token bound to a user.

    Args:
        user_id: User UUID the callback will bind the account to
        ttl_seconds: Lifetime of the token, defaults to STRIPE_OAUTH_STATE_TTL

    Returns:
        The opaque state token
    """
    ttl = ttl_seconds or settings.STRIPE_OAUTH_STATE_TTL
    state = secrets.token_urlsafe(32)
    client = await get_redis_client()
    await client.setex(_oauth_state_key(state), ttl, str(user_id))
    logger.info("Issued Stripe Connect state for user %s with %ss TTL", user_id, ttl)
    return state


async def consume_oauth_state(state: str) -> Optional[str]:
    """
    Atomically read and delete a state token.

    Returns:
        The user id the state was issued for, or None if unknown or expired
    """
    if not state:
        return None
    client = await get_redis_client()
    user_id = await client.getdel(_oauth_state_key(state))
    if user_id is None:
        logger.warning("Unknown or expired Stripe Connect state")
    return user_id
