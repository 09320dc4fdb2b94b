# Copyright (c) chefauth Contributors. All rights reserved.
# Licensed under the MIT License.
"""
In-Memory Store.

Records live in a dict for the life of the process. Used by the tests
and for trying the CLI without Redis.
"""

from typing import Optional

from .provider import AbstractStorageProvider, StorageConfig


class MemoryStorageProvider(AbstractStorageProvider):
    """
    Dict-backed store.

    Contents survive ``disconnect``/``connect`` cycles of the same instance,
    so several short-lived backends can share one provider.
    """

    def __init__(self, config: Optional[StorageConfig] = None):
        super().__init__(config or StorageConfig(backend="memory"))
        self._records: dict[str, str] = {}
        self._open = False

    async def connect(self) -> None:
        self._open = True

    async def disconnect(self) -> None:
        self._open = False

    async def health_check(self) -> bool:
        return self._open

    async def get(self, key: str) -> Optional[str]:
        return self._records.get(key)

    async def put(self, key: str, value: str) -> None:
        self._records[key] = value

    async def delete(self, key: str) -> bool:
        return self._records.pop(key, None) is not None

    async def list(self, prefix: str) -> list[str]:
        leaves = (key[len(prefix):] for key in self._records if key.startswith(prefix))
        return [leaf for leaf in leaves if leaf and "/" not in leaf]
