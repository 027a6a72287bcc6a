"""Redis-backed cache for permission checks"""
from __future__ import annotations

import json
import logging
from typing import Any

import redis.asyncio as redis

from docvault.infrastructure.config.settings import Settings

logger = logging.getLogger(__name__)


class CacheService:
    """
    Async Redis cache with per-key TTL.

    The permission engine stores one JSON value per (document, user) pair.
    Every Redis failure degrades to a miss; the database stays the source of
    truth.
    """

    def __init__(self, settings: Settings, redis_client: redis.Redis | None = None):
        """
        Args:
            settings: Application settings with redis_* fields
            redis_client: Pre-built client (tests and DI); skips connect()
        """
        self.settings = settings
        self.redis = redis_client
        self._connected = redis_client is not None

    async def connect(self) -> None:
        """Open the connection and ping it; on failure the cache stays disabled"""
        if self.redis is not None:
            return

        client = redis.Redis(
            host=self.settings.redis_host,
            port=self.settings.redis_port,
            db=self.settings.redis_db,
            password=self.settings.redis_password or None,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_keepalive=True,
        )
        try:
            await client.ping()
        except (redis.ConnectionError, redis.TimeoutError) as e:
            logger.warning(
                "Redis unreachable at %s:%s (%s); permission checks go to the database",
                self.settings.redis_host,
                self.settings.redis_port,
                e,
            )
            await client.aclose()
            return

        self.redis = client
        self._connected = True
        logger.info(
            "Redis cache connected: %s:%s", self.settings.redis_host, self.settings.redis_port
        )

    async def disconnect(self) -> None:
        if self.redis is not None:
            await self.redis.aclose()
            self._connected = False
            logger.info("Redis cache disconnected")

    def is_available(self) -> bool:
        return self._connected and self.redis is not None

    def _client(self) -> redis.Redis | None:
        return self.redis if self.is_available() else None

    async def get(self, key: str) -> Any | None:
        """Decoded value, or None on a miss, an error or a disabled cache"""
        client = self._client()
        if client is None:
            return None

        try:
            raw = await client.get(key)
        except Exception as e:
            logger.error("Cache get failed for %s: %s", key, e)
            return None

        if not raw:
            logger.debug("Cache MISS: %s", key)
            return None
        logger.debug("Cache HIT: %s", key)
        return json.loads(raw)

    async def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        client = self._client()
        if client is None:
            return False

        try:
            await client.setex(key, ttl, json.dumps(value))
        except Exception as e:
            logger.error("Cache set failed for %s: %s", key, e)
            return False
        return True

    async def delete(self, key: str) -> bool:
        client = self._client()
        if client is None:
            return False

        try:
            await client.delete(key)
        except Exception as e:
            logger.error("Cache delete failed for %s: %s", key, e)
            return False
        return True

    async def delete_pattern(self, pattern: str) -> int:
        """
        Delete every key matching a glob pattern, e.g. "permissions:doc-123:*".

        Returns:
            Number of keys deleted (0 when the cache is unavailable)
        """
        client = self._client()
        if client is None:
            return 0

        deleted = 0
        try:
            async for key in client.scan_iter(match=pattern):
                await client.delete(key)
                deleted += 1
        except Exception as e:
            logger.error("Cache pattern delete failed for %s: %s", pattern, e)
            return deleted

        if deleted:
            logger.info("Cache INVALIDATE: %s (%d keys)", pattern, deleted)
        return deleted
