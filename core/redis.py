
NOTIFICATION_DEBOUNCE_KEY_PREFIX = "ciry:notify"

import logging
import redis

from core.config import settings

logger = logging.getLogger(__name__)

conn = redis.Redis.from_url(
    settings.REDIS_URL,
    decode_responses=True  # returns strings instead of bytes
)


def debounce_key(user_id: int, reading_type: str) -> str:
    return f"{NOTIFICATION_DEBOUNCE_KEY_PREFIX}:{user_id}-{reading_type}"


def acquire_debounce(key: str, ttl_seconds: int) -> bool:
    """True if no notification went out for ``key`` within the window."""
    try:
        return bool(conn.set(key, "1", nx=True, ex=ttl_seconds))
    except redis.RedisError as e:
        # fail open: alert goes out undebounced
        logger.warning(f"Debounce store unavailable for {key}: {e}")
        return True
