"""Shared fixtures for the chefauth test suite."""

from collections import Counter
from typing import Any, Optional

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from chefauth.backend import ChefAuthBackend
from chefauth.exceptions import AuthDeniedError
from chefauth.inventory import InventoryClient, NodeCredentials, NodeRecord
from chefauth.storage import MemoryStorageProvider

CHEF_HOST = "https://chef.example.com/organizations/ops"


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeInventory(InventoryClient):
    """In-memory Chef server.

    Nodes are registered with the key they must present; searches map a
    query string to the rows it returns.
    """

    def __init__(self) -> None:
        self.nodes: dict[str, tuple[str, dict[str, Any]]] = {}
        self.search_results: dict[str, list[Any]] = {}
        self.search_calls: Counter = Counter()
        self.auth_calls = 0
        self.closed = False

    def add_node(
        self,
        name: str,
        key: str,
        policy_name: Optional[str] = None,
        roles: Optional[list[str]] = None,
    ) -> None:
        payload = {
            "name": name,
            "policy_name": policy_name,
            "automatic": {"roles": roles or []},
        }
        self.nodes[name] = (key, payload)

    def remove_node(self, name: str) -> None:
        self.nodes.pop(name, None)

    async def authenticate_node(self, node_name: str, private_key: str, base_url: str) -> NodeRecord:
        self.auth_calls += 1
        entry = self.nodes.get(node_name)
        if entry is None or entry[0] != private_key:
            raise AuthDeniedError(f"chef server rejected node {node_name}")
        return NodeRecord.from_inventory(entry[1], host=base_url)

    async def execute_search(self, query: str, credentials: NodeCredentials) -> list[Any]:
        self.search_calls[query] += 1
        return list(self.search_results.get(query, []))

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def inventory():
    return FakeInventory()


@pytest.fixture
async def storage():
    """Create and connect a memory storage provider."""
    provider = MemoryStorageProvider()
    await provider.connect()
    yield provider
    await provider.disconnect()


@pytest.fixture
def backend(storage, inventory, clock):
    return ChefAuthBackend(storage, inventory, clock=clock)


@pytest.fixture
async def configured(backend):
    """Backend with the global configuration written."""
    await backend.write_config(CHEF_HOST, ["base"])
    return backend


@pytest.fixture(scope="session")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def rsa_key_pem(rsa_key):
    return rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")
