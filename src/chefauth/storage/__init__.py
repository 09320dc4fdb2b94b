# Copyright (c) chefauth Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Storage providers for chefauth.

Provides the abstract key/value interface and its implementations.
"""

from .provider import AbstractStorageProvider, StorageConfig
from .memory_provider import MemoryStorageProvider
from .redis_provider import RedisStorageProvider


def create_storage_provider(config: StorageConfig) -> AbstractStorageProvider:
    """Build the provider named by ``config.backend``."""
    if config.backend == "redis":
        return RedisStorageProvider(config)
    return MemoryStorageProvider(config)


__all__ = [
    "AbstractStorageProvider",
    "StorageConfig",
    "MemoryStorageProvider",
    "RedisStorageProvider",
    "create_storage_provider",
]
