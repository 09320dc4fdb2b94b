# Copyright (c) chefauth Contributors. All rights reserved.
# Licensed under the MIT License.
"""Global (mount-wide) configuration store."""

from __future__ import annotations

import logging
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from ..constants import CONFIG_KEY
from ..exceptions import DecodeError, NotConfiguredError, ValidationError
from ..storage import AbstractStorageProvider
from .base import describe_errors
from .lock import RegistryLock
from .models import GlobalConfig

logger = logging.getLogger(__name__)


class ConfigRegistry:
    """Reads and writes the single ``config`` record."""

    def __init__(self, storage: AbstractStorageProvider, lock: RegistryLock) -> None:
        self._storage = storage
        self._lock = lock

    async def read(self) -> Optional[GlobalConfig]:
        async with self._lock.read():
            raw = await self._storage.get(CONFIG_KEY)
        if raw is None:
            return None
        try:
            return GlobalConfig.model_validate_json(raw)
        except PydanticValidationError as exc:
            logger.error("corrupt global configuration: %s", exc)
            raise DecodeError("cannot decode the global configuration") from exc

    async def require(self) -> GlobalConfig:
        """Like ``read`` but raises NotConfiguredError when nothing is stored."""
        config = await self.read()
        if config is None:
            logger.warning("clients should not use an unconfigured backend")
            raise NotConfiguredError("no host configured")
        return config

    async def write(self, host: str, default_policies: Optional[list[str]] = None) -> GlobalConfig:
        try:
            config = GlobalConfig(host=host, default_policies=default_policies or [])
        except PydanticValidationError as exc:
            raise ValidationError(f"invalid config: {describe_errors(exc)}") from exc
        async with self._lock.write():
            await self._storage.put(CONFIG_KEY, config.model_dump_json())
        logger.info("configured chef host %s", config.host)
        return config
