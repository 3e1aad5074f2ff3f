import logging
from typing import Any, Optional

import redis

from .config import settings

log = logging.getLogger("referral_api.core.redis_client")

_redis_client: Optional[redis.Redis] = None


def get_redis_client() -> Optional[redis.Redis]:
    """Lazy-initialize and return a Redis client.

    Returns None when Redis is not configured or unreachable (fail-open: callers
    fall back to the database).
    """
    global _redis_client

    if _redis_client is not None:
        return _redis_client

    host = settings.REDIS_HOST
    port = settings.REDIS_PORT
    if not host or not port:
        return None

    try:
        client = redis.Redis(host=host, port=port, socket_timeout=1.0, decode_responses=True)
        client.ping()
        _redis_client = client
        return _redis_client
    except redis.RedisError as e:
        log.warning("Redis connection failed: %s. Falling back to database.", e)
        return None


def redis_get(key: str) -> Optional[str]:
    """Fail-open Redis GET wrapper."""
    try:
        client = get_redis_client()
        if not client:
            return None
        return client.get(key)
    except redis.RedisError as e:
        log.warning("Redis GET failed for %s: %s", key, e)
        return None


def redis_setex(key: str, time: int, value: Any) -> bool:
    """Fail-open Redis SETEX wrapper."""
    try:
        client = get_redis_client()
        if not client:
            return False
        return bool(client.setex(key, time, value))
    except redis.RedisError as e:
        log.warning("Redis SETEX failed for %s: %s", key, e)
        return False


def redis_delete(key: str) -> bool:
    """Fail-open Redis DEL wrapper."""
    try:
        client = get_redis_client()
        if not client:
            return False
        return bool(client.delete(key))
    except redis.RedisError as e:
        log.warning("Redis DEL failed for %s: %s", key, e)
        return False
