# Copyright (c) chefauth Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Login Resolution

Turns an authenticated Chef node into an AuthDecision.

Precedence:
1. A node with a ``policy_name`` is matched only by name: the Chef policy
   of that name, otherwise the roles listing it in ``chef_policy_names``.
   A name that matches nothing is denied; role-list matching is not tried.
2. A node without a policy name is matched by every role whose
   ``chef_role_names`` intersects the node's roles.

Saved searches then add policies, followed by the configured default
policies and ``default``. Lease values come only from step 1 or 2.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Literal, Optional, Sequence

from ..constants import (
    DEFAULT_POLICY,
    METADATA_HOST,
    METADATA_MATCHED_SEARCHES,
    METADATA_NODE_NAME,
    METADATA_POLICY,
    METADATA_ROLE,
    POLICY_ALIAS_PREFIX,
    ROLE_ALIAS_PREFIX,
)
from ..exceptions import AuthDeniedError, ChefAuthError
from ..inventory import InventoryClient, NodeCredentials, NodeRecord
from ..observability import AuthMetrics
from ..registry import ConfigRegistry, LeaseRecord, PolicyRegistry, RoleRegistry
from .cache import SearchCache
from .decision import AuthDecision, LeaseState

logger = logging.getLogger(__name__)


@dataclass
class RuleMatch:
    """The Chef policy or roles a node matched, merged into one grant."""

    kind: Literal["policy", "role"]
    names: list[str] = field(default_factory=list)
    policies: list[str] = field(default_factory=list)
    group_aliases: list[str] = field(default_factory=list)
    ttl: int = 0
    max_ttl: int = 0
    period: int = 0

    def add(self, record: LeaseRecord, alias_prefix: str) -> None:
        self.names.append(record.name)
        self.group_aliases.append(alias_prefix + record.name)
        self.policies = merge_policies(self.policies, record.policies)
        self.ttl = max(self.ttl, record.ttl)
        self.max_ttl = max(self.max_ttl, record.max_ttl)
        self.period = max(self.period, record.period)
        if self.period:
            self.ttl = self.max_ttl = 0


def merge_policies(*groups: Iterable[str]) -> list[str]:
    """Union of policy lists, first occurrence wins the position."""
    merged: list[str] = []
    for group in groups:
        for policy in group:
            if policy not in merged:
                merged.append(policy)
    return merged


class ResolutionEngine:
    """Resolves logins against the registries and the saved search cache."""

    def __init__(
        self,
        config: ConfigRegistry,
        policies: PolicyRegistry,
        roles: RoleRegistry,
        cache: SearchCache,
        inventory: InventoryClient,
        metrics: Optional[AuthMetrics] = None,
    ) -> None:
        self._config = config
        self._policies = policies
        self._roles = roles
        self._cache = cache
        self._inventory = inventory
        self._metrics = metrics

    async def login(self, node_name: str, private_key: str) -> AuthDecision:
        """Authenticate ``node_name`` and compute its grant, recording metrics."""
        try:
            decision = await self.resolve(node_name, private_key)
        except AuthDeniedError:
            self._record("denied")
            raise
        except ChefAuthError:
            self._record("error")
            raise
        self._record("success")
        return decision

    def _record(self, result: str) -> None:
        if self._metrics is not None:
            self._metrics.record_login(result)

    async def resolve(self, node_name: str, private_key: str) -> AuthDecision:
        """Authenticate ``node_name`` and compute its grant.

        Raises:
            NotConfiguredError: No Chef server host is configured.
            AuthDeniedError: The Chef server rejected the node or no rule matched.
            StructuralError: The Chef server returned malformed data.
            DecodeError: A stored record is corrupt.
        """
        config = await self._config.require()
        node = await self._inventory.authenticate_node(node_name, private_key, config.host)

        match = await self.match(node)
        if match is None:
            logger.warning("no match found for node %s, permission denied", node_name)
            raise AuthDeniedError("no match found. permission denied.")

        credentials = NodeCredentials(
            node_name=node_name, private_key=private_key, base_url=config.host
        )
        searches = await self._cache.matching_searches(node, credentials)

        metadata = {METADATA_NODE_NAME: node_name, METADATA_HOST: config.host}
        metadata[METADATA_POLICY if match.kind == "policy" else METADATA_ROLE] = ",".join(match.names)
        if searches.search_names:
            metadata[METADATA_MATCHED_SEARCHES] = ",".join(searches.search_names)

        policies = merge_policies(
            match.policies, searches.policies, config.default_policies, [DEFAULT_POLICY]
        )
        logger.info(
            "node %s matched %s %s, granted %s",
            node_name, match.kind, ",".join(match.names), ",".join(policies),
        )
        return AuthDecision(
            display_name=node_name,
            policies=tuple(policies),
            ttl=match.ttl,
            max_ttl=match.max_ttl,
            period=match.period,
            renewable=True,
            metadata=metadata,
            group_aliases=tuple(match.group_aliases),
            internal_data=LeaseState(
                node_name=node_name,
                private_key=private_key,
                matched_kind=match.kind,
                matched_names=tuple(match.names),
            ),
        )

    async def match(self, node: NodeRecord) -> Optional[RuleMatch]:
        """The rules matching ``node``, or None."""
        if node.policy_name:
            return await self._match_policy_name(node.policy_name)
        return await self._match_roles(node.roles)

    async def _match_policy_name(self, policy_name: str) -> Optional[RuleMatch]:
        policy = await self._policies.get(policy_name)
        if policy is not None:
            match = RuleMatch(kind="policy")
            match.add(policy, POLICY_ALIAS_PREFIX)
            return match

        roles = await self._roles.matching_policy_name(policy_name)
        if not roles:
            logger.warning("chef policy %s matches no stored policy or role", policy_name)
            return None
        return self._merge_roles(roles)

    async def _match_roles(self, chef_roles: Sequence[str]) -> Optional[RuleMatch]:
        roles = await self._roles.matching_chef_roles(chef_roles)
        if not roles:
            return None
        return self._merge_roles(roles)

    @staticmethod
    def _merge_roles(roles: Sequence[LeaseRecord]) -> RuleMatch:
        match = RuleMatch(kind="role")
        for role in sorted(roles, key=lambda r: r.key):
            match.add(role, ROLE_ALIAS_PREFIX)
        return match
