"""Redis cache service for provider flexible-calendar data."""

import json
import logging
from typing import Any

import redis.asyncio as redis
from redis.exceptions import RedisError

from staybridge.config import settings

logger = logging.getLogger(__name__)


class CacheService:
    """Redis-backed cache. Every failure degrades to a miss."""

    def __init__(self, url: str | None = None, calendar_ttl: int | None = None):
        self._url = url or settings.redis_url
        self._calendar_ttl = calendar_ttl or settings.calendar_cache_ttl
        self._redis: redis.Redis | None = None

    async def _get_redis(self) -> redis.Redis | None:
        if self._redis is None:
            try:
                self._redis = redis.from_url(
                    self._url,
                    encoding="utf-8",
                    decode_responses=True,
                )
                await self._redis.ping()
            except (RedisError, OSError) as e:
                logger.warning(f"Redis unavailable, cache disabled: {e}")
                self._redis = None
                return None
        return self._redis

    async def get(self, key: str) -> Any | None:
        """Get a value from cache. Returns None on miss or error."""
        try:
            r = await self._get_redis()
            if r is None:
                return None
            raw = await r.get(key)
            if raw is None:
                return None
            return json.loads(raw)
        except (RedisError, OSError, ValueError) as e:
            logger.warning(f"Cache read failed for {key}: {e}")
            return None

    async def set(self, key: str, value: Any, ttl: int) -> bool:
        """Set a value in cache with TTL. Returns False on error."""
        try:
            r = await self._get_redis()
            if r is None:
                return False
            await r.set(key, json.dumps(value, default=str), ex=ttl)
            return True
        except (RedisError, OSError, TypeError) as e:
            logger.warning(f"Cache write failed for {key}: {e}")
            return False

    # Typed helpers

    def calendar_key(self, hotel_id: str, party: str, from_date: str, to_date: str) -> str:
        return f"calendar:{hotel_id}:{party}:{from_date}:{to_date}"

    async def set_calendar(self, key: str, data: dict) -> bool:
        return await self.set(key, data, self._calendar_ttl)

    async def close(self):
        if self._redis:
            await self._redis.aclose()
            self._redis = None


cache_service = CacheService()
