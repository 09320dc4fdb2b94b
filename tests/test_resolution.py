"""Tests for login resolution: matching, precedence, merging and denial."""

import pytest

from chefauth.auth import merge_policies
from chefauth.exceptions import (
    AuthDeniedError,
    DecodeError,
    NotConfiguredError,
    StructuralError,
    ValidationError,
)
from conftest import CHEF_HOST


class TestPolicyNameMatching:
    async def test_chef_policy_match(self, configured, inventory):
        inventory.add_node("web01", "key", policy_name="webapp")
        await configured.write_policy("webapp", policies=["web-secrets", "logs"], ttl=600, max_ttl=3600)

        decision = await configured.login("web01", "key")

        assert set(decision.policies) == {"web-secrets", "logs", "base", "default"}
        assert decision.policies[-1] == "default"
        assert (decision.ttl, decision.max_ttl, decision.period) == (600, 3600, 0)
        assert decision.renewable is True
        assert decision.display_name == "web01"
        assert decision.metadata == {"node_name": "web01", "host": CHEF_HOST, "policy": "webapp"}
        assert decision.group_aliases == ("policy-webapp",)

    async def test_policy_name_is_case_insensitive(self, configured, inventory):
        inventory.add_node("web01", "key", policy_name="WebApp")
        await configured.write_policy("webapp", policies=["web"], ttl=60)
        decision = await configured.login("web01", "key")
        assert "web" in decision.policies

    async def test_unmatched_policy_name_never_falls_back_to_roles(self, configured, inventory):
        inventory.add_node("web01", "key", policy_name="unknown", roles=["web"])
        await configured.write_role("web", policies=["web"], ttl=60, chef_role_names=["web"])

        with pytest.raises(AuthDeniedError):
            await configured.login("web01", "key")

    async def test_role_matched_by_chef_policy_name(self, configured, inventory):
        inventory.add_node("web01", "key", policy_name="webapp", roles=["db"])
        await configured.write_role("frontend", policies=["fe"], period="1h", chef_policy_names=["webapp"])
        await configured.write_role("db", policies=["db"], ttl=60, chef_role_names=["db"])

        decision = await configured.login("web01", "key")
        assert "fe" in decision.policies
        assert "db" not in decision.policies
        assert decision.period == 3600
        assert decision.metadata["role"] == "frontend"
        assert decision.group_aliases == ("role-frontend",)

    async def test_chef_policy_wins_over_role_with_same_policy_name(self, configured, inventory):
        inventory.add_node("web01", "key", policy_name="webapp")
        await configured.write_policy("webapp", policies=["from-policy"], ttl=60)
        await configured.write_role("frontend", policies=["from-role"], ttl=60, chef_policy_names=["webapp"])

        decision = await configured.login("web01", "key")
        assert "from-policy" in decision.policies
        assert "from-role" not in decision.policies


class TestRoleListMatching:
    async def test_only_existing_roles_contribute(self, configured, inventory):
        inventory.add_node("db01", "key", roles=["a", "b"])
        await configured.write_role("a", policies=["pa"], ttl=60, chef_role_names=["a"])

        decision = await configured.login("db01", "key")
        assert decision.policies == ("pa", "base", "default")
        assert decision.metadata["role"] == "a"
        assert decision.group_aliases == ("role-a",)

    async def test_union_of_all_matched_roles(self, configured, inventory):
        inventory.add_node("db01", "key", roles=["base", "postgres"])
        await configured.write_role("common", policies=["shared", "monitoring"], ttl=300, chef_role_names=["base"])
        await configured.write_role("database", policies=["shared", "db"], ttl=60, max_ttl=7200,
                                    chef_role_names=["postgres"])
        await configured.write_role("unrelated", policies=["other"], ttl=60, chef_role_names=["redis"])

        decision = await configured.login("db01", "key")
        assert decision.policies == ("shared", "monitoring", "db", "base", "default")
        assert (decision.ttl, decision.max_ttl, decision.period) == (300, 7200, 0)
        assert decision.group_aliases == ("role-common", "role-database")
        assert decision.metadata["role"] == "common,database"

    async def test_period_role_makes_lease_periodic(self, configured, inventory):
        inventory.add_node("db01", "key", roles=["base", "postgres"])
        await configured.write_role("common", ttl=300, chef_role_names=["base"])
        await configured.write_role("database", period="2h", chef_role_names=["postgres"])

        decision = await configured.login("db01", "key")
        assert (decision.ttl, decision.max_ttl, decision.period) == (0, 0, 7200)

    async def test_role_names_match_exactly(self, configured, inventory):
        inventory.add_node("db01", "key", roles=["Postgres"])
        await configured.write_role("database", ttl=60, chef_role_names=["postgres"])
        with pytest.raises(AuthDeniedError):
            await configured.login("db01", "key")

    async def test_no_roles_no_match(self, configured, inventory):
        inventory.add_node("bare", "key")
        await configured.write_role("database", ttl=60, chef_role_names=["postgres"])
        with pytest.raises(AuthDeniedError):
            await configured.login("bare", "key")


class TestSearchesAndDefaults:
    async def test_search_policies_added_but_not_lease(self, configured, inventory):
        inventory.add_node("web01", "key", policy_name="webapp")
        inventory.search_results["chef_environment:prod"] = [{"name": "web01"}]
        await configured.write_policy("webapp", policies=["web"], ttl=60)
        await configured.write_search("prod", search_query="chef_environment:prod",
                                      allowed_staleness=60, policies=["prod", "web"])

        decision = await configured.login("web01", "key")
        assert decision.policies == ("web", "prod", "base", "default")
        assert decision.metadata["chef-matched-searches"] == "prod"
        assert (decision.ttl, decision.max_ttl) == (60, 60)

    async def test_search_alone_does_not_grant_login(self, configured, inventory):
        inventory.add_node("web01", "key")
        inventory.search_results["*:*"] = [{"name": "web01"}]
        await configured.write_search("all", search_query="*:*", policies=["everyone"])

        with pytest.raises(AuthDeniedError):
            await configured.login("web01", "key")
        assert inventory.search_calls["*:*"] == 0

    async def test_structural_search_error_aborts_login(self, configured, inventory):
        inventory.add_node("web01", "key", policy_name="webapp")
        inventory.search_results["role:web"] = [{"name": 12}]
        await configured.write_policy("webapp", ttl=60)
        await configured.write_search("web", search_query="role:web")

        with pytest.raises(StructuralError):
            await configured.login("web01", "key")

    async def test_no_default_policies_configured(self, backend, inventory):
        await backend.write_config(CHEF_HOST)
        inventory.add_node("web01", "key", policy_name="webapp")
        await backend.write_policy("webapp", policies=["web", "default"], ttl=60)

        decision = await backend.login("web01", "key")
        assert decision.policies == ("web", "default")


class TestFailures:
    async def test_unconfigured_backend(self, backend, inventory):
        inventory.add_node("web01", "key", policy_name="webapp")
        with pytest.raises(NotConfiguredError):
            await backend.login("web01", "key")
        assert inventory.auth_calls == 0

    async def test_wrong_key_denied(self, configured, inventory):
        inventory.add_node("web01", "key", policy_name="webapp")
        await configured.write_policy("webapp", ttl=60)
        with pytest.raises(AuthDeniedError):
            await configured.login("web01", "other-key")

    async def test_unknown_node_denied(self, configured):
        with pytest.raises(AuthDeniedError):
            await configured.login("ghost", "key")

    @pytest.mark.parametrize("node_name,key", [("", "key"), ("web01", ""), (None, "key"), ("web01", None)])
    async def test_missing_fields(self, configured, node_name, key):
        with pytest.raises(ValidationError):
            await configured.login(node_name, key)

    async def test_corrupt_record_is_decode_error(self, configured, inventory, storage):
        inventory.add_node("web01", "key", policy_name="webapp")
        await storage.put("policy/webapp", "garbage")
        with pytest.raises(DecodeError):
            await configured.login("web01", "key")

    async def test_deleted_role_stops_matching_without_touching_issued_decisions(
        self, configured, inventory
    ):
        inventory.add_node("db01", "key", roles=["postgres"])
        await configured.write_role("database", policies=["db"], ttl=60, chef_role_names=["postgres"])
        issued = await configured.login("db01", "key")
        snapshot = issued.model_dump()

        await configured.delete_role("database")
        with pytest.raises(AuthDeniedError):
            await configured.login("db01", "key")
        assert issued.model_dump() == snapshot


class TestLeaseState:
    async def test_internal_data_carries_identity(self, configured, inventory):
        inventory.add_node("web01", "secret-key", policy_name="webapp")
        await configured.write_policy("webapp", ttl=60)

        state = (await configured.login("web01", "secret-key")).internal_data
        assert state.node_name == "web01"
        assert state.private_key == "secret-key"
        assert state.matched_kind == "policy"
        assert state.matched_names == ("webapp",)
        assert "secret-key" not in repr(state)


class TestMergePolicies:
    def test_first_occurrence_keeps_position(self):
        assert merge_policies(["a", "b"], ["b", "c"], [], ["a", "default"]) == ["a", "b", "c", "default"]
