# Copyright (c) chefauth Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Registries of administrator-defined matching rules.

Chef policies, roles, saved searches and the global configuration, all
persisted through a storage provider and guarded by one RegistryLock.
"""

from .base import RecordRegistry
from .config import ConfigRegistry
from .lock import RegistryLock
from .models import (
    ChefPolicy,
    ChefRecord,
    ChefSearch,
    GlobalConfig,
    LeaseRecord,
    Role,
    parse_duration,
    parse_policies,
)
from .policies import PolicyRegistry
from .roles import RoleRegistry
from .searches import SearchRegistry

__all__ = [
    "RecordRegistry",
    "ConfigRegistry",
    "RegistryLock",
    "ChefPolicy",
    "ChefRecord",
    "ChefSearch",
    "GlobalConfig",
    "LeaseRecord",
    "Role",
    "parse_duration",
    "parse_policies",
    "PolicyRegistry",
    "RoleRegistry",
    "SearchRegistry",
]
