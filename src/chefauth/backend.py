# Copyright (c) chefauth Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Chef Auth Backend

Request-level entry points for a host process: global configuration,
CRUD on Chef policies, roles and saved searches, login and renewal.
Request validation and the create/update dispatch live here; matching
lives in ``chefauth.auth``.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Literal, Mapping, Optional, Union

from .auth import AuthDecision, LeaseState, RenewalEngine, ResolutionEngine, SearchCache
from .config import BackendConfig
from .exceptions import ValidationError
from .inventory import ChefServerClient, InventoryClient
from .observability import AuthMetrics
from .registry import (
    ChefPolicy,
    ChefSearch,
    ConfigRegistry,
    GlobalConfig,
    PolicyRegistry,
    RecordRegistry,
    RegistryLock,
    Role,
    RoleRegistry,
    SearchRegistry,
)
from .storage import AbstractStorageProvider, create_storage_provider

logger = logging.getLogger(__name__)

Operation = Literal["create", "update"]


def _require(value: Optional[str], message: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(message)
    return value


class ChefAuthBackend:
    """
    Wires storage, registries, the Chef client and the engines together.

    Args:
        storage: Backing key/value store.
        inventory: Chef server client.
        metrics: Optional Prometheus metrics.
        clock: Monotonic clock for the saved search cache.

    Example:
        >>> backend = ChefAuthBackend.from_config(BackendConfig())
        >>> async with backend:
        ...     await backend.write_config("https://chef.example.com/organizations/ops")
        ...     decision = await backend.login("web01", pem)
    """

    def __init__(
        self,
        storage: AbstractStorageProvider,
        inventory: InventoryClient,
        metrics: Optional[AuthMetrics] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.storage = storage
        self.inventory = inventory
        self.lock = RegistryLock()

        self.config = ConfigRegistry(storage, self.lock)
        self.policies = PolicyRegistry(storage, self.lock)
        self.roles = RoleRegistry(storage, self.lock)
        self.searches = SearchRegistry(storage, self.lock)

        self.cache = SearchCache(self.searches, inventory, clock=clock, metrics=metrics)
        self.resolution = ResolutionEngine(
            self.config, self.policies, self.roles, self.cache, inventory, metrics=metrics
        )
        self.renewal = RenewalEngine(self.resolution, metrics=metrics)

    @classmethod
    def from_config(cls, config: BackendConfig) -> "ChefAuthBackend":
        """Build a backend talking to a real Chef server."""
        metrics = AuthMetrics() if config.enable_metrics else None
        inventory = ChefServerClient(
            timeout=config.inventory_timeout_seconds,
            verify_ssl=config.verify_ssl,
            page_size=config.search_page_size,
            metrics=metrics,
        )
        return cls(create_storage_provider(config.storage), inventory, metrics=metrics)

    async def setup(self) -> None:
        await self.storage.connect()

    async def close(self) -> None:
        await self.inventory.aclose()
        await self.storage.disconnect()

    async def __aenter__(self) -> "ChefAuthBackend":
        await self.setup()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # Global configuration

    async def write_config(
        self, host: Optional[str], default_policies: Optional[list[str]] = None
    ) -> GlobalConfig:
        _require(host, "no host provided")
        return await self.config.write(host, default_policies)

    async def read_config(self) -> Optional[GlobalConfig]:
        return await self.config.read()

    # Record CRUD

    async def _write(
        self,
        registry: RecordRegistry,
        name: Optional[str],
        operation: Optional[Operation],
        fields: dict[str, Any],
    ):
        _require(name, "missing name")
        if operation is None:
            operation = "update" if await registry.exists(name) else "create"
        if operation == "create":
            return await registry.create(name, **fields)
        if operation == "update":
            return await registry.update(name, **fields)
        raise ValidationError(f"unsupported operation {operation!r}")

    async def write_policy(
        self, name: str, operation: Optional[Operation] = None, **fields: Any
    ) -> ChefPolicy:
        """Create or update a Chef policy; fields: policies, ttl, max_ttl, period."""
        return await self._write(self.policies, name, operation, fields)

    async def read_policy(self, name: str) -> Optional[ChefPolicy]:
        return await self.policies.get(_require(name, "missing name"))

    async def list_policies(self) -> set[str]:
        return await self.policies.list()

    async def delete_policy(self, name: str) -> bool:
        return await self.policies.delete(_require(name, "missing policy name"))

    async def write_role(
        self, name: str, operation: Optional[Operation] = None, **fields: Any
    ) -> Role:
        """Create or update a role; fields: policies, chef_policy_names,
        chef_role_names, ttl, max_ttl, period."""
        return await self._write(self.roles, name, operation, fields)

    async def read_role(self, name: str) -> Optional[Role]:
        return await self.roles.get(_require(name, "missing name"))

    async def list_roles(self) -> set[str]:
        return await self.roles.list()

    async def delete_role(self, name: str) -> bool:
        return await self.roles.delete(_require(name, "missing role name"))

    async def write_search(
        self, name: str, operation: Optional[Operation] = None, **fields: Any
    ) -> ChefSearch:
        """Create or update a saved search; fields: search_query,
        allowed_staleness, policies. Drops any cached result for it."""
        search = await self._write(self.searches, name, operation, fields)
        self.cache.invalidate(search.name)
        return search

    async def read_search(self, name: str) -> Optional[ChefSearch]:
        return await self.searches.get(_require(name, "missing name"))

    async def list_searches(self) -> set[str]:
        return await self.searches.list()

    async def delete_search(self, name: str) -> bool:
        deleted = await self.searches.delete(_require(name, "missing search name"))
        self.cache.invalidate(name)
        return deleted

    def refresh_searches(self) -> int:
        """Forget every cached saved search result."""
        return self.cache.flush()

    # Login and renewal

    async def login(self, node_name: Optional[str], private_key: Optional[str]) -> AuthDecision:
        _require(node_name, "no node name provided")
        _require(private_key, "no private key provided")
        return await self.resolution.login(node_name, private_key)

    async def renew(
        self, lease_state: Union[LeaseState, Mapping[str, Any], None]
    ) -> AuthDecision:
        return await self.renewal.renew(lease_state)
