# Copyright (c) chefauth Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Inventory service access.

The abstract client, the typed records parsed from its responses, and the
Chef server implementation.
"""

from .client import InventoryClient
from .chef import ChefServerClient, normalize_base_url
from .models import NodeCredentials, NodeRecord, member_names
from .signing import load_private_key, sign_request

__all__ = [
    "InventoryClient",
    "ChefServerClient",
    "normalize_base_url",
    "NodeCredentials",
    "NodeRecord",
    "member_names",
    "load_private_key",
    "sign_request",
]
