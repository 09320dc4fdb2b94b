# Copyright (c) chefauth Contributors. All rights reserved.
# Licensed under the MIT License.
"""Coarse readers/writer lock guarding registry mutation."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator


class RegistryLock:
    """Readers/writer lock for asyncio with writer preference.

    Any number of readers may hold the lock together. A writer waits for
    active readers to drain, and new readers queue behind a waiting writer.
    The lock is not reentrant: never take ``write()`` while holding ``read()``.

    Example:
        >>> lock = RegistryLock()
        >>> async with lock.read():
        ...     ...
    """

    def __init__(self) -> None:
        self._cond = asyncio.Condition()
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @property
    def readers(self) -> int:
        return self._readers

    @property
    def writing(self) -> bool:
        return self._writer

    @asynccontextmanager
    async def read(self) -> AsyncIterator[None]:
        async with self._cond:
            await self._cond.wait_for(
                lambda: not self._writer and self._writers_waiting == 0
            )
            self._readers += 1
        try:
            yield
        finally:
            async with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @asynccontextmanager
    async def write(self) -> AsyncIterator[None]:
        async with self._cond:
            self._writers_waiting += 1
            try:
                await self._cond.wait_for(
                    lambda: not self._writer and self._readers == 0
                )
            finally:
                self._writers_waiting -= 1
                # a cancelled writer must not leave readers parked
                self._cond.notify_all()
            self._writer = True
        try:
            yield
        finally:
            async with self._cond:
                self._writer = False
                self._cond.notify_all()
