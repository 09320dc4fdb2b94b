# Copyright (c) chefauth Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Keyed Record Registry

CRUD over one namespace of the backing store. Names are case-insensitive:
the storage key is the lower-cased name, the record keeps the name as
written. Writes hold the registry lock exclusively, reads share it.
"""

from __future__ import annotations

import logging
from typing import Any, ClassVar, Generic, Optional, TypeVar

from pydantic import ValidationError as PydanticValidationError

from ..exceptions import (
    DecodeError,
    RecordExistsError,
    RecordNotFoundError,
    ValidationError,
)
from ..storage import AbstractStorageProvider
from .lock import RegistryLock
from .models import ChefRecord

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=ChefRecord)


def describe_errors(exc: PydanticValidationError) -> str:
    """Flatten pydantic errors into one line, e.g. ``ttl: invalid duration 'x'``."""
    parts = []
    for error in exc.errors():
        location = ".".join(str(loc) for loc in error["loc"]) or "record"
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)


class RecordRegistry(Generic[RecordT]):
    """Generic registry; subclasses set ``prefix``, ``record_type`` and ``kind``."""

    prefix: ClassVar[str]
    record_type: ClassVar[type[ChefRecord]]
    kind: ClassVar[str]

    def __init__(self, storage: AbstractStorageProvider, lock: RegistryLock) -> None:
        self._storage = storage
        self._lock = lock

    def _key(self, name: str) -> str:
        if not name:
            raise ValidationError(f"{self.kind}'s name is empty")
        return self.prefix + name.lower()

    async def _load(self, name: str) -> Optional[RecordT]:
        key = self._key(name)
        raw = await self._storage.get(key)
        if raw is None:
            return None
        try:
            return self.record_type.model_validate_json(raw)
        except PydanticValidationError as exc:
            logger.error("corrupt %s record at %s: %s", self.kind, key, exc)
            raise DecodeError(f"cannot decode {self.kind} {name!r}") from exc

    async def _store(self, record: RecordT) -> None:
        await self._storage.put(self._key(record.name), record.model_dump_json())

    def _build(self, fields: dict[str, Any]) -> RecordT:
        try:
            record = self.record_type.model_validate(fields)
        except PydanticValidationError as exc:
            raise ValidationError(
                f"invalid {self.kind}: {describe_errors(exc)}"
            ) from exc
        return record.validate_for_write()

    async def get(self, name: str) -> Optional[RecordT]:
        """Return the record, or None when absent."""
        async with self._lock.read():
            return await self._load(name)

    async def exists(self, name: str) -> bool:
        return await self.get(name) is not None

    async def create(self, name: str, **fields: Any) -> RecordT:
        """Store a new record. Raises RecordExistsError if the name is taken."""
        supplied = {k: v for k, v in fields.items() if v is not None}
        record = self._build({**supplied, "name": name})
        async with self._lock.write():
            if await self._load(name) is not None:
                raise RecordExistsError(f"{self.kind} {name!r} already exists")
            await self._store(record)
        logger.info("created %s %s", self.kind, record.name)
        return record

    async def update(self, name: str, **fields: Any) -> RecordT:
        """Merge the supplied fields over the stored record.

        Fields passed as None are left untouched. Raises RecordNotFoundError
        if the record does not exist.
        """
        supplied = {k: v for k, v in fields.items() if v is not None}
        supplied.pop("name", None)
        async with self._lock.write():
            current = await self._load(name)
            if current is None:
                raise RecordNotFoundError(f"{self.kind} {name!r} not found")
            record = self._build({**current.model_dump(), **supplied})
            await self._store(record)
        logger.info("updated %s %s", self.kind, record.name)
        return record

    async def delete(self, name: str) -> bool:
        """Remove the record. Returns False if there was nothing to delete."""
        async with self._lock.write():
            deleted = await self._storage.delete(self._key(name))
        if deleted:
            logger.info("deleted %s %s", self.kind, name)
        return deleted

    async def list(self) -> set[str]:
        """Storage keys of every record, unordered."""
        async with self._lock.read():
            return set(await self._storage.list(self.prefix))

    async def list_records(self) -> list[RecordT]:
        """Every stored record, loaded under one shared lock."""
        async with self._lock.read():
            names = await self._storage.list(self.prefix)
            records = []
            for name in names:
                record = await self._load(name)
                if record is not None:
                    records.append(record)
            return records
