# Copyright (c) chefauth Contributors. All rights reserved.
# Licensed under the MIT License.
"""Role registry and its login-time lookups."""

from __future__ import annotations

from typing import Iterable

from ..constants import ROLE_PREFIX
from .base import RecordRegistry
from .models import Role


class RoleRegistry(RecordRegistry[Role]):
    """Roles match nodes by Chef policy name or by run-list role intersection.

    Lookups scan the stored roles on demand; there is no secondary index to
    keep in sync with writes.
    """

    prefix = ROLE_PREFIX
    record_type = Role
    kind = "role"

    async def matching_policy_name(self, policy_name: str) -> list[Role]:
        """Roles listing ``policy_name`` in their ``chef_policy_names``."""
        return [
            role
            for role in await self.list_records()
            if policy_name in role.chef_policy_names
        ]

    async def matching_chef_roles(self, chef_roles: Iterable[str]) -> list[Role]:
        """Roles whose ``chef_role_names`` intersect ``chef_roles``."""
        wanted = set(chef_roles)
        if not wanted:
            return []
        return [
            role
            for role in await self.list_records()
            if wanted.intersection(role.chef_role_names)
        ]
