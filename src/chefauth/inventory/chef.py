# Copyright (c) chefauth Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Chef Server Client

Talks to a Chef Infra server over HTTPS as the authenticating node. Every
request is signed with the node's own client key, so a successful
``GET /nodes/<name>`` proves possession of that key.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Optional
from urllib.parse import quote

import httpx

from ..constants import DEFAULT_INVENTORY_TIMEOUT_SECONDS, DEFAULT_SEARCH_PAGE_SIZE
from ..exceptions import AuthDeniedError, InventoryError, StructuralError
from ..observability import AuthMetrics
from .client import InventoryClient
from .models import NodeCredentials, NodeRecord
from .signing import load_private_key, sign_request

logger = logging.getLogger(__name__)

CHEF_VERSION = "18.0.0"


def normalize_base_url(host: str) -> str:
    """Turn ``host``, ``host:port`` or a URL into a base URL without trailing slash."""
    host = host.strip()
    if "://" not in host:
        host = f"https://{host}"
    return host.rstrip("/")


class ChefServerClient(InventoryClient):
    """InventoryClient for a Chef Infra server.

    Args:
        timeout: Seconds allowed for each request.
        verify_ssl: Verify the server certificate.
        page_size: Rows requested per search page.
        transport: Optional httpx transport (tests use ``httpx.MockTransport``).
        metrics: Optional metrics sink for request latency.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_INVENTORY_TIMEOUT_SECONDS,
        verify_ssl: bool = True,
        page_size: int = DEFAULT_SEARCH_PAGE_SIZE,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        metrics: Optional[AuthMetrics] = None,
    ) -> None:
        self._page_size = page_size
        self._metrics = metrics
        self._client = httpx.AsyncClient(
            timeout=timeout,
            verify=verify_ssl,
            transport=transport,
            headers={"Accept": "application/json", "X-Chef-Version": CHEF_VERSION},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get(
        self,
        operation: str,
        url: str,
        credentials: NodeCredentials,
        params: Optional[dict[str, Any]] = None,
    ) -> httpx.Response:
        key = load_private_key(credentials.private_key)
        headers = sign_request(key, credentials.node_name, "GET", httpx.URL(url).path)
        started = time.perf_counter()
        try:
            return await self._client.get(url, params=params, headers=headers)
        finally:
            if self._metrics is not None:
                self._metrics.observe_inventory(operation, time.perf_counter() - started)

    async def authenticate_node(
        self, node_name: str, private_key: str, base_url: str
    ) -> NodeRecord:
        base = normalize_base_url(base_url)
        credentials = NodeCredentials(node_name=node_name, private_key=private_key, base_url=base)
        url = f"{base}/nodes/{quote(node_name, safe='')}"

        try:
            response = await self._get("authenticate", url, credentials)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.error("error while authenticating node %s with %s: %s", node_name, base, exc)
            raise AuthDeniedError(f"cannot reach chef server {base}") from exc

        if response.status_code != 200:
            logger.warning(
                "chef server %s rejected node %s with status %s",
                base, node_name, response.status_code,
            )
            raise AuthDeniedError(f"chef server rejected node {node_name}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise StructuralError("chef server returned a non-JSON node record") from exc

        node = NodeRecord.from_inventory(payload, host=base)
        if node.name != node_name:
            logger.warning("chef server returned node %s when asked for %s", node.name, node_name)
            raise AuthDeniedError(f"chef server rejected node {node_name}")
        return node

    async def execute_search(self, query: str, credentials: NodeCredentials) -> list[Any]:
        base = normalize_base_url(credentials.base_url)
        url = f"{base}/search/node"
        rows: list[Any] = []
        start = 0

        while True:
            params = {"q": query, "start": start, "rows": self._page_size}
            try:
                response = await self._get("search", url, credentials, params=params)
            except (httpx.HTTPError, httpx.InvalidURL) as exc:
                logger.error("error while executing the search %r: %s", query, exc)
                raise InventoryError(f"error while executing the search: {exc}") from exc

            if response.status_code != 200:
                raise InventoryError(
                    f"error while executing the search: status {response.status_code}"
                )

            try:
                payload = response.json()
            except ValueError as exc:
                raise StructuralError("chef server returned a non-JSON search result") from exc
            if not isinstance(payload, dict) or not isinstance(payload.get("rows"), list):
                raise StructuralError("invalid type for search result returned by Chef")

            page = payload["rows"]
            rows.extend(page)
            start += len(page)
            total = payload.get("total", start)
            if not isinstance(total, int):
                raise StructuralError("invalid total in search result returned by Chef")
            if not page or start >= total:
                return rows
