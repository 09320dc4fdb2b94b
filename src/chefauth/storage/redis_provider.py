# Copyright (c) chefauth Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Redis Storage Provider.

Production backend with connection pooling. Every Redis failure is surfaced
as a StorageError; nothing is retried.
"""

from typing import Optional
import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from ..exceptions import StorageError
from .provider import AbstractStorageProvider, StorageConfig

logger = logging.getLogger(__name__)


class RedisStorageProvider(AbstractStorageProvider):
    """
    Redis storage provider.

    Keys are stored as ``<namespace>:<key>``, so ``policy/web`` in the
    default namespace lives at ``chefauth:policy/web``.
    """

    def __init__(self, config: StorageConfig, client: Optional[aioredis.Redis] = None):
        """Initialize Redis storage. ``client`` may be injected for tests."""
        super().__init__(config)
        self._client = client
        self._pool = None

    async def connect(self) -> None:
        """Establish connection to Redis."""
        if self._client is None:
            self._pool = aioredis.ConnectionPool(
                host=self.config.redis_host,
                port=self.config.redis_port,
                db=self.config.redis_db,
                password=self.config.redis_password,
                ssl=self.config.redis_ssl,
                max_connections=self.config.pool_size,
                socket_timeout=self.config.timeout_seconds,
                socket_connect_timeout=self.config.timeout_seconds,
                decode_responses=True,
            )
            self._client = aioredis.Redis(connection_pool=self._pool)

        try:
            await self._client.ping()
        except RedisError as exc:
            raise StorageError(f"cannot connect to redis: {exc}") from exc

    async def disconnect(self) -> None:
        """Close connection to Redis."""
        if self._client:
            await self._client.aclose()
        if self._pool:
            await self._pool.disconnect()

    async def health_check(self) -> bool:
        """Check if Redis is healthy."""
        try:
            if self._client:
                await self._client.ping()
                return True
        except RedisError:
            logger.debug("Redis health check failed", exc_info=True)
        return False

    def _key(self, key: str) -> str:
        return f"{self.config.namespace}:{key}"

    async def get(self, key: str) -> Optional[str]:
        """Get value by key."""
        try:
            return await self._client.get(self._key(key))
        except RedisError as exc:
            logger.error("redis GET %s failed: %s", key, exc)
            raise StorageError(f"error reading {key!r}: {exc}") from exc

    async def put(self, key: str, value: str) -> None:
        """Store value under key."""
        try:
            await self._client.set(self._key(key), value)
        except RedisError as exc:
            logger.error("redis SET %s failed: %s", key, exc)
            raise StorageError(f"error writing {key!r}: {exc}") from exc

    async def delete(self, key: str) -> bool:
        """Delete key."""
        try:
            result = await self._client.delete(self._key(key))
        except RedisError as exc:
            logger.error("redis DEL %s failed: %s", key, exc)
            raise StorageError(f"error deleting {key!r}: {exc}") from exc
        return result > 0

    async def list(self, prefix: str) -> list[str]:
        """List leaf names directly under prefix."""
        full_prefix = self._key(prefix)
        names = []
        try:
            async for key in self._client.scan_iter(match=f"{full_prefix}*", count=100):
                leaf = key[len(full_prefix):]
                if leaf and "/" not in leaf:
                    names.append(leaf)
        except RedisError as exc:
            logger.error("redis SCAN %s failed: %s", prefix, exc)
            raise StorageError(f"error listing {prefix!r}: {exc}") from exc
        return names
