"""
Key-value cache backed by Redis.

Values are stored as JSON with a TTL.  When ``settings.redis_url`` is
empty the cache is disabled: lookups miss and writes report ``False``.
Redis errors are logged and treated like a miss so that a cache
outage never fails a request.
"""

import json
import logging
from typing import Any, Dict, Optional

import redis
import redis.asyncio as aioredis

from ..core.config import settings

logger = logging.getLogger(__name__)


class CacheService:
    """Thin JSON wrapper around an asyncio Redis client."""

    _client: Optional[aioredis.Redis] = None

    @classmethod
    def get_client(cls) -> Optional[aioredis.Redis]:
        if cls._client is None and settings.redis_url:
            cls._client = aioredis.Redis.from_url(
                settings.redis_url,
                decode_responses=True,
                socket_timeout=2,
                socket_connect_timeout=2,
            )
        return cls._client

    @classmethod
    def set_client(cls, client: Optional[aioredis.Redis]) -> None:
        """Install a client explicitly (``None`` disables the cache)."""
        cls._client = client

    @classmethod
    async def get(cls, key: str) -> Any:
        client = cls.get_client()
        if client is None:
            return None
        try:
            value = await client.get(key)
        except redis.RedisError as exc:
            logger.error("Cache get error for %s: %s", key, exc)
            return None
        if value is None:
            return None
        try:
            return json.loads(value)
        except ValueError:
            return value

    @classmethod
    async def set(cls, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        client = cls.get_client()
        if client is None:
            return False
        serialized = value if isinstance(value, str) else json.dumps(value, default=str)
        try:
            await client.set(key, serialized, ex=ttl or settings.cache_ttl)
        except redis.RedisError as exc:
            logger.error("Cache set error for %s: %s", key, exc)
            return False
        return True

    @classmethod
    async def delete(cls, key: str) -> bool:
        client = cls.get_client()
        if client is None:
            return False
        try:
            await client.delete(key)
        except redis.RedisError as exc:
            logger.error("Cache delete error for %s: %s", key, exc)
            return False
        return True

    @classmethod
    async def delete_pattern(cls, pattern: str) -> int:
        """Delete every key matching the glob ``pattern``.

        Returns the number of keys removed.
        """
        client = cls.get_client()
        if client is None:
            return 0
        try:
            keys = [key async for key in client.scan_iter(match=pattern)]
            if not keys:
                return 0
            return await client.delete(*keys)
        except redis.RedisError as exc:
            logger.error("Cache delete error for pattern %s: %s", pattern, exc)
            return 0

    @classmethod
    async def clear(cls) -> bool:
        client = cls.get_client()
        if client is None:
            return False
        try:
            await client.flushdb()
        except redis.RedisError as exc:
            logger.error("Cache clear error: %s", exc)
            return False
        return True

    @classmethod
    async def health(cls) -> Dict[str, Any]:
        client = cls.get_client()
        if client is None:
            return {"status": "DISABLED", "connected": False}
        try:
            await client.ping()
        except redis.RedisError as exc:
            return {"status": "ERROR", "connected": False, "error": str(exc)}
        return {"status": "OK", "connected": True}
