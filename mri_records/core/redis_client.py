"""Redis client for token revocation and login throttling."""

from typing import cast

import redis
import structlog

from mri_records.config import settings

logger = structlog.get_logger(__name__)

# Global Redis client instance
_redis_client: redis.Redis | None = None


def get_redis_client() -> redis.Redis:
    """
    Get or create Redis client instance.

    Returns:
        Redis client instance
    """
    global _redis_client

    if _redis_client is None:
        _redis_client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            username=settings.redis_username,
            password=settings.redis_password,
            decode_responses=settings.redis_decode_responses,
            socket_connect_timeout=5,
            socket_keepalive=True,
            health_check_interval=30,
        )

    return _redis_client


async def check_redis_connection() -> bool:
    """Check if Redis connection is healthy."""
    try:
        get_redis_client().ping()
        return True
    except Exception:
        return False


def close_redis_connection() -> None:
    """Close Redis connection."""
    global _redis_client

    if _redis_client is not None:
        _redis_client.close()
        _redis_client = None


class RateLimiter:
    """Fixed window counter kept in Redis."""

    def __init__(self, redis_client: redis.Redis):
        """Initialize rate limiter with Redis client."""
        self.redis = redis_client

    def check_rate_limit(
        self,
        key: str,
        limit: int,
        window: int = 60,
    ) -> bool:
        """
        Count one attempt against ``key``.

        Args:
            key: Rate limit key (e.g. ``login:<username>``)
            limit: Maximum attempts per window
            window: Window length in seconds

        Returns:
            True if within limit, False if exceeded. Redis errors fail open.
        """
        try:
            current = cast(str | None, self.redis.get(key))

            if current is None:
                self.redis.setex(key, window, 1)
                return True

            if int(current) >= limit:
                return False

            self.redis.incr(key)
            return True
        except Exception as e:
            logger.warning("rate_limiter_unavailable", key=key, error=str(e))
            return True

    def reset(self, key: str) -> None:
        """Clear the counter, e.g. after a successful login."""
        try:
            self.redis.delete(key)
        except Exception as e:
            logger.warning("rate_limiter_unavailable", key=key, error=str(e))


class CacheManager:
    """Small key/value helper over Redis."""

    def __init__(self, redis_client: redis.Redis):
        """Initialize cache manager with Redis client."""
        self.redis = redis_client

    def set(
        self,
        key: str,
        value: str,
        ttl: int | None = None,
    ) -> bool:
        """
        Set a value, optionally expiring after ``ttl`` seconds.

        Returns:
            True if successful, False otherwise
        """
        try:
            if ttl:
                self.redis.setex(key, ttl, value)
            else:
                self.redis.set(key, value)
            return True
        except Exception:
            return False

    def exists(self, key: str) -> bool:
        """Check if key exists."""
        try:
            return bool(self.redis.exists(key))
        except Exception:
            return False
