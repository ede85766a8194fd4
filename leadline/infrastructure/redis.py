"""Redis client wrapper for caching."""

import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from leadline.settings import settings

logger = logging.getLogger(__name__)


class RedisClient:
    """Redis client wrapper for async operations.

    Every operation is a no-op when Redis is disabled or unreachable; the
    cache is an optimization and never a source of truth.
    """

    def __init__(self, enabled: bool | None = None) -> None:
        self._client: aioredis.Redis | None = None
        self._enabled: bool = settings.redis_enabled if enabled is None else enabled

    @property
    def enabled(self) -> bool:
        return self._enabled and self._client is not None

    async def connect(self) -> None:
        """Connect to Redis."""
        if not self._enabled:
            logger.info("Redis disabled - skipping connection")
            return
        if self._client is None:
            try:
                self._client = aioredis.from_url(
                    settings.redis_url,
                    encoding="utf-8",
                    decode_responses=True,
                )
                await self._client.ping()
                logger.info("Redis connected successfully")
            except RedisError as e:
                logger.warning(f"Redis connection failed: {e}. Continuing without Redis.")
                self._client = None
                self._enabled = False

    async def disconnect(self) -> None:
        """Disconnect from Redis."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get(self, key: str) -> str | None:
        """Get value from Redis, or None when missing or disabled."""
        if not self.enabled:
            return None
        try:
            return await self._client.get(key)
        except RedisError as e:
            logger.warning(f"Redis GET failed for {key}: {e}")
            return None

    async def set(self, key: str, value: str, ttl: int | None = None) -> bool:
        """Set value in Redis.

        Args:
            key: Redis key
            value: Value to set
            ttl: Optional time-to-live in seconds

        Returns:
            True if stored (or Redis is disabled)
        """
        if not self.enabled:
            return True
        try:
            if ttl:
                return bool(await self._client.setex(key, ttl, value))
            return bool(await self._client.set(key, value))
        except RedisError as e:
            logger.warning(f"Redis SET failed for {key}: {e}")
            return False

    async def delete(self, key: str) -> int:
        """Delete key from Redis."""
        if not self.enabled:
            return 0
        try:
            return await self._client.delete(key)
        except RedisError as e:
            logger.warning(f"Redis DELETE failed for {key}: {e}")
            return 0


# Global Redis client instance
redis_client = RedisClient()
