# Copyright (c) chefauth Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Saved Search Cache

Running every saved search on every login would hammer the Chef server, so
each search's membership is reused for up to ``allowed_staleness`` seconds.
Expiry is a monotonic deadline checked on access; nothing is scheduled.

The cache is not guarded by the registry lock: a search is a network call
and must not wait behind administrative writes. Two logins that miss at the
same time both query and the later result wins, which is harmless.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from ..inventory import InventoryClient, NodeCredentials, NodeRecord, member_names
from ..observability import AuthMetrics
from ..registry import ChefSearch, SearchRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchCacheEntry:
    """Membership of one saved search, valid until ``expires_at``."""

    search_name: str
    members: frozenset[str]
    expires_at: float

    def expired(self, now: float) -> bool:
        return now >= self.expires_at


@dataclass
class SearchMatch:
    """Saved searches a node belongs to and the policies they grant."""

    search_names: list[str] = field(default_factory=list)
    policies: list[str] = field(default_factory=list)


class SearchCache:
    """Staleness-bounded cache of saved search memberships.

    Args:
        searches: Registry holding the saved searches.
        inventory: Client used to run the queries.
        clock: Monotonic clock, injectable for tests.
        metrics: Optional metrics sink.
    """

    def __init__(
        self,
        searches: SearchRegistry,
        inventory: InventoryClient,
        clock: Callable[[], float] = time.monotonic,
        metrics: Optional[AuthMetrics] = None,
    ) -> None:
        self._searches = searches
        self._inventory = inventory
        self._clock = clock
        self._metrics = metrics
        self._entries: dict[str, SearchCacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def _record(self, outcome: str) -> None:
        if self._metrics is not None:
            self._metrics.record_cache(outcome)

    def get_entry(self, name: str) -> Optional[SearchCacheEntry]:
        """The live entry for ``name``; an expired entry is evicted and None returned."""
        key = name.lower()
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expired(self._clock()):
            self._evict(key, entry)
            return None
        return entry

    def _evict(self, key: str, entry: SearchCacheEntry) -> None:
        # only drop the entry we looked at, a concurrent refresh may have replaced it
        if self._entries.get(key) is entry:
            del self._entries[key]
            logger.debug("search %s expired from cache", entry.search_name)

    def invalidate(self, name: str) -> bool:
        """Drop the entry for one search. Returns False if nothing was cached."""
        return self._entries.pop(name.lower(), None) is not None

    def flush(self) -> int:
        """Drop every entry. Returns how many were dropped."""
        count = len(self._entries)
        self._entries.clear()
        logger.info("flushed %d saved search cache entries", count)
        return count

    async def _query(self, search: ChefSearch, credentials: NodeCredentials) -> frozenset[str]:
        rows = await self._inventory.execute_search(search.search_query, credentials)
        if not rows:
            logger.warning('search "%s" returned 0 entries', search.name)
        return member_names(rows)

    async def members(self, search: ChefSearch, credentials: NodeCredentials) -> frozenset[str]:
        """Node names matching ``search``, from cache when allowed."""
        if search.allowed_staleness == 0:
            self._record("bypass")
            return await self._query(search, credentials)

        entry = self.get_entry(search.key)
        if entry is not None:
            self._record("hit")
            return entry.members

        self._record("miss")
        members = await self._query(search, credentials)
        self._entries[search.key] = SearchCacheEntry(
            search_name=search.name,
            members=members,
            expires_at=self._clock() + search.allowed_staleness,
        )
        logger.debug(
            "cached %d members of search %s for %ss",
            len(members), search.name, search.allowed_staleness,
        )
        return members

    async def matching_searches(
        self, node: NodeRecord, credentials: NodeCredentials
    ) -> SearchMatch:
        """Evaluate every saved search for ``node``.

        A StructuralError from any search aborts the whole evaluation.
        """
        match = SearchMatch()
        searches = sorted(await self._searches.list_records(), key=lambda s: s.key)
        for search in searches:
            if node.name in await self.members(search, credentials):
                match.search_names.append(search.name)
                for policy in search.policies:
                    if policy not in match.policies:
                        match.policies.append(policy)
        return match
