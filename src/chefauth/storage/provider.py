# Copyright (c) chefauth Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Backing Store Interface.

chefauth keeps its global configuration and every matching rule as JSON
documents in a key/value store. Keys are slash separated: ``config``,
``policy/<name>``, ``role/<name>``, ``search/<name>``.
"""

from abc import ABC, abstractmethod
from typing import Literal, Optional
from pydantic import BaseModel, Field


class StorageConfig(BaseModel):
    """Where chefauth keeps its records."""

    backend: Literal["memory", "redis"] = Field(default="memory", description="Store implementation")
    timeout_seconds: int = Field(default=30, ge=1, le=300, description="Per-command timeout")

    # Lets several mounts share one Redis database
    namespace: str = Field(default="chefauth", description="Key namespace")

    redis_host: str = Field(default="localhost")
    redis_port: int = Field(default=6379, ge=1, le=65535)
    redis_db: int = Field(default=0, ge=0)
    redis_password: Optional[str] = Field(default=None, repr=False)
    redis_ssl: bool = False
    pool_size: int = Field(default=10, ge=1, le=100, description="Max Redis connections")


class AbstractStorageProvider(ABC):
    """
    Key/value store holding chefauth records.

    Values are opaque JSON text; the registries own their shape. A missing
    key reads as None, never as an error.
    """

    def __init__(self, config: StorageConfig):
        self.config = config

    @abstractmethod
    async def connect(self) -> None:
        """Open the store. Raises StorageError when it is unreachable."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Release the store's connections."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        pass

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """The document stored at ``key``, or None."""
        pass

    @abstractmethod
    async def put(self, key: str, value: str) -> None:
        """Write ``value`` at ``key``, replacing what was there."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove ``key``. Returns False if nothing was stored there."""
        pass

    @abstractmethod
    async def list(self, prefix: str) -> list[str]:
        """
        Leaf names stored directly under ``prefix``.

        ``list("policy/")`` returns ``["web", "db"]`` for keys
        ``policy/web`` and ``policy/db``. Order is unspecified.
        """
        pass
