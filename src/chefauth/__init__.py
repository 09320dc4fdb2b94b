# Copyright (c) chefauth Contributors. All rights reserved.
# Licensed under the MIT License.
"""
chefauth - Chef node authentication for Vault-style secret stores

A node proves its identity with its Chef client key; chefauth checks it
against the Chef server and maps the node's Chef policy name, run-list
roles and saved-search memberships onto access policies and a lease.

Version: 0.3.0
"""

__version__ = "0.3.0"

from .auth import (
    AuthDecision,
    LeaseState,
    RenewalEngine,
    ResolutionEngine,
    SearchCache,
)
from .backend import ChefAuthBackend
from .config import BackendConfig
from .exceptions import (
    AuthDeniedError,
    ChefAuthError,
    DecodeError,
    InventoryError,
    NotConfiguredError,
    RecordExistsError,
    RecordNotFoundError,
    StorageError,
    StructuralError,
    ValidationError,
)
from .inventory import ChefServerClient, InventoryClient, NodeCredentials, NodeRecord
from .registry import (
    ChefPolicy,
    ChefSearch,
    ConfigRegistry,
    GlobalConfig,
    PolicyRegistry,
    RegistryLock,
    Role,
    RoleRegistry,
    SearchRegistry,
)
from .storage import (
    AbstractStorageProvider,
    MemoryStorageProvider,
    RedisStorageProvider,
    StorageConfig,
)

__all__ = [
    "__version__",

    # Backend
    "ChefAuthBackend",
    "BackendConfig",

    # Resolution
    "AuthDecision",
    "LeaseState",
    "RenewalEngine",
    "ResolutionEngine",
    "SearchCache",

    # Registries
    "ChefPolicy",
    "ChefSearch",
    "ConfigRegistry",
    "GlobalConfig",
    "PolicyRegistry",
    "RegistryLock",
    "Role",
    "RoleRegistry",
    "SearchRegistry",

    # Inventory
    "ChefServerClient",
    "InventoryClient",
    "NodeCredentials",
    "NodeRecord",

    # Storage
    "AbstractStorageProvider",
    "MemoryStorageProvider",
    "RedisStorageProvider",
    "StorageConfig",

    # Exceptions
    "ChefAuthError",
    "ValidationError",
    "RecordExistsError",
    "RecordNotFoundError",
    "NotConfiguredError",
    "AuthDeniedError",
    "StorageError",
    "DecodeError",
    "StructuralError",
    "InventoryError",
]
