# Copyright (c) chefauth Contributors. All rights reserved.
# Licensed under the MIT License.
"""Abstract inventory client."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from .models import NodeCredentials, NodeRecord


class InventoryClient(ABC):
    """Authenticates nodes and runs searches against the inventory service."""

    @abstractmethod
    async def authenticate_node(
        self, node_name: str, private_key: str, base_url: str
    ) -> NodeRecord:
        """Fetch the node's own record using its credentials.

        Raises:
            AuthDeniedError: The server rejected the credentials, or the
                request could not be completed.
            StructuralError: The node record has an unexpected shape.
        """

    @abstractmethod
    async def execute_search(self, query: str, credentials: NodeCredentials) -> list[Any]:
        """Run a node search and return the raw result rows.

        Raises:
            InventoryError: The search request failed.
        """

    async def aclose(self) -> None:
        """Release network resources."""
