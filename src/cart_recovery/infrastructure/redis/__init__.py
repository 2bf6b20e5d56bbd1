"""Redis cache and scan lock with graceful degradation."""

import uuid
from typing import Any

import orjson
import redis.asyncio as aioredis
import structlog

from cart_recovery.config import Settings

logger = structlog.get_logger()


async def create_redis_client(settings: Settings) -> aioredis.Redis | None:
    """Connect to Redis, returning None when it is unreachable."""
    client = aioredis.from_url(
        settings.redis_url,
        decode_responses=False,
        socket_connect_timeout=2,
        socket_timeout=2,
        retry_on_timeout=True,
    )
    try:
        await client.ping()
        logger.info("Redis connection established")
    except Exception as e:
        logger.warning("Redis unavailable, caching and scan lock disabled", error=str(e))
        await client.aclose()
        return None
    return client


class CacheService:
    """Async Redis cache with orjson serialization. No-ops if Redis is unavailable."""

    def __init__(self, client: aioredis.Redis | None):
        self.client = client

    async def get(self, key: str) -> Any | None:
        if not self.client:
            return None
        try:
            data = await self.client.get(key)
            if data:
                return orjson.loads(data)
        except Exception as e:
            logger.warning("Cache get failed", key=key, error=str(e))
        return None

    async def set(self, key: str, value: Any, ttl_seconds: int = 300) -> None:
        if not self.client:
            return
        try:
            await self.client.set(key, orjson.dumps(value), ex=ttl_seconds)
        except Exception as e:
            logger.warning("Cache set failed", key=key, error=str(e))

    async def acquire_lock(self, key: str, ttl_seconds: int) -> str | None:
        """Take a best-effort lock, returning its token or None if it is held.

        Without Redis the lock always succeeds; in-process guards still apply.
        """
        token = uuid.uuid4().hex
        if not self.client:
            return token
        try:
            acquired = await self.client.set(key, token, nx=True, ex=ttl_seconds)
        except Exception as e:
            logger.warning("Lock acquire failed, proceeding unlocked", key=key, error=str(e))
            return token
        return token if acquired else None

    async def release_lock(self, key: str, token: str) -> None:
        if not self.client:
            return
        try:
            current = await self.client.get(key)
            if current is not None and current.decode() == token:
                await self.client.delete(key)
        except Exception as e:
            logger.warning("Lock release failed", key=key, error=str(e))

    async def health_check(self) -> bool:
        if not self.client:
            return False
        try:
            return await self.client.ping()
        except Exception:
            return False

    async def close(self) -> None:
        if self.client:
            await self.client.aclose()
            self.client = None
