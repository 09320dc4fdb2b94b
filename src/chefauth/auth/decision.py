# Copyright (c) chefauth Contributors. All rights reserved.
# Licensed under the MIT License.
"""Login outcome and the lease state kept for renewal."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class LeaseState(BaseModel):
    """Internal data stored with an issued lease.

    Opaque to callers: the host persists it and hands it back on renewal.
    It carries the node's private key so renewal can authenticate again.
    """

    model_config = ConfigDict(frozen=True)

    node_name: str = Field(..., min_length=1)
    private_key: str = Field(..., min_length=1, repr=False)
    matched_kind: Literal["policy", "role"]
    matched_names: tuple[str, ...] = ()


class AuthDecision(BaseModel):
    """A granted login: policies plus lease parameters.

    Attributes:
        display_name: The node name.
        policies: Deduplicated union of every granted policy, in grant order.
        ttl: Token TTL in seconds (0 when period based).
        max_ttl: Token max TTL in seconds (0 when period based).
        period: Token period in seconds (0 when TTL based).
        renewable: Always True.
        metadata: Display metadata (node, host, matched rule and searches).
        group_aliases: One alias per matched Chef policy or role.
        internal_data: State needed to renew.
    """

    model_config = ConfigDict(frozen=True)

    display_name: str
    policies: tuple[str, ...]
    ttl: int = 0
    max_ttl: int = 0
    period: int = 0
    renewable: bool = True
    metadata: dict[str, str] = Field(default_factory=dict)
    group_aliases: tuple[str, ...] = ()
    internal_data: LeaseState
