"""Tests for the saved search membership cache."""

import asyncio

import pytest

from chefauth.exceptions import StructuralError
from chefauth.inventory import NodeCredentials, NodeRecord
from conftest import CHEF_HOST

QUERY = "chef_environment:prod"


@pytest.fixture
def node():
    return NodeRecord(name="web01", roles=["web"], host=CHEF_HOST)


@pytest.fixture
def credentials():
    return NodeCredentials(node_name="web01", private_key="key-web01", base_url=CHEF_HOST)


async def _add_search(backend, name="prod", staleness=60, policies=("prod-secrets",), query=QUERY):
    return await backend.write_search(
        name, search_query=query, allowed_staleness=staleness, policies=list(policies)
    )


class TestSearchCache:
    async def test_member_gets_policies(self, backend, inventory, node, credentials):
        inventory.search_results[QUERY] = [{"name": "web01"}, {"name": "web02"}]
        await _add_search(backend)

        match = await backend.cache.matching_searches(node, credentials)
        assert match.search_names == ["prod"]
        assert match.policies == ["prod-secrets"]

    async def test_non_member_gets_nothing(self, backend, inventory, node, credentials):
        inventory.search_results[QUERY] = [{"name": "db01"}]
        await _add_search(backend)

        match = await backend.cache.matching_searches(node, credentials)
        assert match.search_names == []
        assert match.policies == []

    async def test_reused_within_staleness_window(self, backend, inventory, clock, node, credentials):
        inventory.search_results[QUERY] = [{"name": "web01"}]
        await _add_search(backend, staleness=60)

        await backend.cache.matching_searches(node, credentials)
        clock.advance(59)
        await backend.cache.matching_searches(node, credentials)
        assert inventory.search_calls[QUERY] == 1

    async def test_requeried_after_window(self, backend, inventory, clock, node, credentials):
        inventory.search_results[QUERY] = [{"name": "db01"}]
        await _add_search(backend, staleness=60)

        first = await backend.cache.matching_searches(node, credentials)
        assert first.search_names == []

        inventory.search_results[QUERY] = [{"name": "web01"}]
        clock.advance(60)
        second = await backend.cache.matching_searches(node, credentials)
        assert inventory.search_calls[QUERY] == 2
        assert second.search_names == ["prod"]

    async def test_zero_staleness_bypasses_cache(self, backend, inventory, node, credentials):
        inventory.search_results[QUERY] = [{"name": "web01"}]
        await _add_search(backend, staleness=0)

        for _ in range(3):
            await backend.cache.matching_searches(node, credentials)
        assert inventory.search_calls[QUERY] == 3
        assert len(backend.cache) == 0

    async def test_concurrent_lookups_share_cached_result(self, backend, inventory, node, credentials):
        inventory.search_results[QUERY] = [{"name": "web01"}]
        await _add_search(backend, staleness=300)
        await backend.cache.matching_searches(node, credentials)

        results = await asyncio.gather(
            *(backend.cache.matching_searches(node, credentials) for _ in range(5))
        )
        assert all(r.search_names == ["prod"] for r in results)
        assert inventory.search_calls[QUERY] == 1

    async def test_concurrent_cold_misses_are_harmless(self, backend, inventory, node, credentials):
        inventory.search_results[QUERY] = [{"name": "web01"}]
        await _add_search(backend, staleness=300)

        results = await asyncio.gather(
            backend.cache.matching_searches(node, credentials),
            backend.cache.matching_searches(node, credentials),
        )
        assert all(r.search_names == ["prod"] for r in results)
        assert 1 <= inventory.search_calls[QUERY] <= 2
        assert backend.cache.get_entry("prod").members == frozenset({"web01"})

    async def test_bad_row_aborts_evaluation(self, backend, inventory, node, credentials):
        inventory.search_results[QUERY] = [{"name": "web01"}]
        inventory.search_results["role:broken"] = [{"fqdn": "x"}]
        await _add_search(backend, name="a-broken", query="role:broken")
        await _add_search(backend, name="b-prod")

        with pytest.raises(StructuralError):
            await backend.cache.matching_searches(node, credentials)
        assert backend.cache.get_entry("a-broken") is None

    async def test_empty_result_is_not_an_error(self, backend, inventory, node, credentials):
        await _add_search(backend)
        match = await backend.cache.matching_searches(node, credentials)
        assert match.search_names == []

    async def test_policies_union_across_searches(self, backend, inventory, node, credentials):
        inventory.search_results[QUERY] = [{"name": "web01"}]
        inventory.search_results["role:web"] = [{"name": "web01"}]
        await _add_search(backend, name="prod", policies=["shared", "prod"])
        await _add_search(backend, name="web", query="role:web", policies=["shared", "web"])

        match = await backend.cache.matching_searches(node, credentials)
        assert match.search_names == ["prod", "web"]
        assert match.policies == ["shared", "prod", "web"]


class TestCacheMaintenance:
    async def test_expired_entry_evicted_on_access(self, backend, inventory, clock, node, credentials):
        inventory.search_results[QUERY] = [{"name": "web01"}]
        await _add_search(backend, staleness=10)
        await backend.cache.matching_searches(node, credentials)
        assert backend.cache.get_entry("prod") is not None

        clock.advance(10)
        assert backend.cache.get_entry("PROD") is None
        assert len(backend.cache) == 0

    async def test_eviction_tolerates_replaced_entry(self, backend, inventory, clock, node, credentials):
        inventory.search_results[QUERY] = [{"name": "web01"}]
        await _add_search(backend, staleness=10)
        await backend.cache.matching_searches(node, credentials)
        stale = backend.cache.get_entry("prod")

        clock.advance(10)
        await backend.cache.matching_searches(node, credentials)
        fresh = backend.cache.get_entry("prod")
        backend.cache._evict("prod", stale)
        assert backend.cache.get_entry("prod") is fresh

    async def test_invalidate_and_flush(self, backend, inventory, node, credentials):
        inventory.search_results[QUERY] = [{"name": "web01"}]
        inventory.search_results["role:web"] = [{"name": "web01"}]
        await _add_search(backend, name="prod")
        await _add_search(backend, name="web", query="role:web")
        await backend.cache.matching_searches(node, credentials)
        assert len(backend.cache) == 2

        assert backend.cache.invalidate("Prod")
        assert not backend.cache.invalidate("prod")
        assert backend.cache.flush() == 1
        assert len(backend.cache) == 0
