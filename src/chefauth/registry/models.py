# Copyright (c) chefauth Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Registry Records

Administrator-defined rules that map Chef nodes onto Vault policies:
Chef policies (matched by a node's ``policy_name``), roles (matched by
policy name or by the node's role list) and saved searches.
"""

from __future__ import annotations

import math
import re
from datetime import timedelta
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..constants import NAME_PATTERN
from ..exceptions import ValidationError
from ..inventory.chef import normalize_base_url

_NAME_RE = re.compile(NAME_PATTERN)
_DURATION_RE = re.compile(r"(?:\d+[smhd])+")
_DURATION_PART_RE = re.compile(r"(\d+)([smhd])")
_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(value: Any) -> int:
    """Convert a duration to whole seconds.

    Accepts ints, integral floats, timedeltas, and strings such as ``"90"``,
    ``"30s"``, ``"15m"`` or ``"1h30m"``. ``None`` and ``""`` mean zero.
    """
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        raise ValueError("duration must be a number of seconds or a duration string")
    if isinstance(value, timedelta):
        seconds = value.total_seconds()
    elif isinstance(value, (int, float)):
        seconds = value
    elif isinstance(value, str):
        text = value.strip().lower()
        if text.isdigit():
            seconds = int(text)
        elif _DURATION_RE.fullmatch(text):
            seconds = sum(
                int(amount) * _UNIT_SECONDS[unit]
                for amount, unit in _DURATION_PART_RE.findall(text)
            )
        else:
            raise ValueError(f"invalid duration {value!r}")
    else:
        raise ValueError(f"invalid duration {value!r}")

    if isinstance(seconds, float) and not math.isfinite(seconds):
        raise ValueError(f"invalid duration {value!r}")
    if seconds < 0:
        raise ValueError("duration cannot be negative")
    if float(seconds) != int(seconds):
        raise ValueError("duration must be a whole number of seconds")
    return int(seconds)


def parse_policies(value: Any) -> list[str]:
    """Normalize a policy list the way Vault does.

    Entries are trimmed and lower-cased, empty entries are dropped and
    duplicates removed; first-seen order is kept. A comma separated string
    is accepted as well as a list.
    """
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    elif not isinstance(value, (list, tuple, set, frozenset)):
        raise ValueError("policies must be a list or a comma separated string")
    result: list[str] = []
    for item in value:
        policy = str(item).strip().lower()
        if policy and policy not in result:
            result.append(policy)
    return result


def parse_names(value: Any) -> list[str]:
    """Trim and deduplicate a list of Chef names, keeping their case."""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    elif not isinstance(value, (list, tuple, set, frozenset)):
        raise ValueError("names must be a list or a comma separated string")
    result: list[str] = []
    for item in value:
        name = str(item).strip()
        if name and name not in result:
            result.append(name)
    return result


class ChefRecord(BaseModel):
    """Base for every record stored in a registry."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., description="Record name, case-insensitive key")

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        if not _NAME_RE.fullmatch(value):
            raise ValueError(f"invalid name {value!r}")
        return value

    @property
    def key(self) -> str:
        return self.name.lower()

    def validate_for_write(self) -> "ChefRecord":
        """Apply write-time rules; returns the record to store."""
        return self


class LeaseRecord(ChefRecord):
    """A record granting a lease: ttl/max_ttl based or period based."""

    policies: list[str] = Field(default_factory=list, description="Vault policies to grant")
    ttl: int = Field(default=0, ge=0, description="Token TTL in seconds")
    max_ttl: int = Field(default=0, ge=0, description="Token max TTL in seconds")
    period: int = Field(default=0, ge=0, description="Token period in seconds")

    @field_validator("policies", mode="before")
    @classmethod
    def _parse_policies(cls, value: Any) -> list[str]:
        return parse_policies(value)

    @field_validator("ttl", "max_ttl", "period", mode="before")
    @classmethod
    def _parse_duration(cls, value: Any) -> int:
        return parse_duration(value)

    def validate_for_write(self) -> "LeaseRecord":
        if self.ttl == 0 and self.period == 0:
            raise ValidationError("you must provide either period or ttl")
        if self.period != 0:
            return self.model_copy(update={"ttl": 0, "max_ttl": 0})
        if self.max_ttl < self.ttl:
            if self.max_ttl != 0:
                raise ValidationError(
                    "max_ttl should always be left zero or be higher than ttl"
                )
            return self.model_copy(update={"max_ttl": self.ttl})
        return self


class ChefPolicy(LeaseRecord):
    """Matches nodes whose Chef ``policy_name`` equals this record's name."""


class Role(LeaseRecord):
    """Matches nodes by Chef policy name or by intersection with the run-list roles."""

    chef_policy_names: list[str] = Field(default_factory=list)
    chef_role_names: list[str] = Field(default_factory=list)

    @field_validator("chef_policy_names", "chef_role_names", mode="before")
    @classmethod
    def _parse_names(cls, value: Any) -> list[str]:
        return parse_names(value)


class ChefSearch(ChefRecord):
    """A saved Chef node search whose members gain extra policies."""

    search_query: str = Field(..., min_length=1, description="Chef (Solr) search query")
    allowed_staleness: int = Field(
        default=0, ge=0, description="Seconds a cached result may be reused, 0 disables caching"
    )
    policies: list[str] = Field(default_factory=list)

    @field_validator("search_query", mode="before")
    @classmethod
    def _strip_query(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("allowed_staleness", mode="before")
    @classmethod
    def _parse_staleness(cls, value: Any) -> int:
        return parse_duration(value)

    @field_validator("policies", mode="before")
    @classmethod
    def _parse_policies(cls, value: Any) -> list[str]:
        return parse_policies(value)


class GlobalConfig(BaseModel):
    """Mount-wide settings read on every login."""

    host: str = Field(
        ...,
        min_length=1,
        description="Chef server: a host, a host:port pair, or the base URL of an organization",
    )
    default_policies: list[str] = Field(default_factory=list)

    @field_validator("host", mode="before")
    @classmethod
    def _strip_host(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("host")
    @classmethod
    def _check_host(cls, value: str) -> str:
        try:
            httpx.URL(normalize_base_url(value))
        except httpx.InvalidURL as exc:
            raise ValueError(f"invalid chef server host {value!r}: {exc}") from exc
        return value

    @field_validator("default_policies", mode="before")
    @classmethod
    def _parse_policies(cls, value: Any) -> list[str]:
        return parse_policies(value)
