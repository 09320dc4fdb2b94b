# Copyright (c) chefauth Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Inventory Records

Chef server responses are untyped JSON. They are parsed here, once, into
typed records; anything with an unexpected shape raises StructuralError.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..exceptions import StructuralError


class NodeCredentials(BaseModel):
    """What is needed to talk to the Chef server as a given node."""

    model_config = ConfigDict(frozen=True)

    node_name: str
    private_key: str = Field(repr=False)
    base_url: str


class NodeRecord(BaseModel):
    """A node as recorded by the Chef server.

    Attributes:
        name: Node (client) name.
        policy_name: Policyfile name, None when the node uses roles.
        roles: Expanded run-list roles from the ``automatic`` attributes.
        host: The Chef server the record was read from.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    policy_name: Optional[str] = None
    roles: list[str] = Field(default_factory=list)
    host: str = ""

    @classmethod
    def from_inventory(cls, payload: Any, host: str = "") -> "NodeRecord":
        """Build a NodeRecord from a ``GET /nodes/<name>`` response body."""
        if not isinstance(payload, dict):
            raise StructuralError("invalid type for node data returned by Chef")

        name = payload.get("name")
        if not isinstance(name, str) or not name:
            raise StructuralError("name is missing from the node returned by Chef")

        policy_name = payload.get("policy_name")
        if policy_name is not None and not isinstance(policy_name, str):
            raise StructuralError(f"policy_name {policy_name!r} of node {name} is not a string")

        automatic = payload.get("automatic") or {}
        if not isinstance(automatic, dict):
            raise StructuralError(f"automatic attributes of node {name} are not a mapping")
        raw_roles = automatic.get("roles") or []
        if not isinstance(raw_roles, list):
            raise StructuralError(f"roles of node {name} are not a list")
        roles = []
        for role in raw_roles:
            if not isinstance(role, str):
                raise StructuralError(f"can't read role name {role!r} of node {name} as a string")
            roles.append(role)

        return cls(name=name, policy_name=policy_name or None, roles=roles, host=host)


def member_names(rows: Iterable[Any]) -> frozenset[str]:
    """Names of the nodes in a search result.

    Every row must be a mapping with a string ``name``; one bad row makes
    the whole result unusable.
    """
    names = set()
    for row in rows:
        if not isinstance(row, dict):
            raise StructuralError("invalid type for data returned by Chef")
        if "name" not in row:
            raise StructuralError("name is missing from the response of Chef")
        name = row["name"]
        if not isinstance(name, str):
            raise StructuralError(f"name {name!r} is incorrect from the response of Chef")
        names.add(name)
    return frozenset(names)
