# Copyright (c) chefauth Contributors. All rights reserved.
# Licensed under the MIT License.
"""Storage layout and naming constants shared across chefauth."""

CONFIG_KEY = "config"
POLICY_PREFIX = "policy/"
ROLE_PREFIX = "role/"
SEARCH_PREFIX = "search/"

# Always granted on a successful login.
DEFAULT_POLICY = "default"

POLICY_ALIAS_PREFIX = "policy-"
ROLE_ALIAS_PREFIX = "role-"

METADATA_NODE_NAME = "node_name"
METADATA_HOST = "host"
METADATA_POLICY = "policy"
METADATA_ROLE = "role"
METADATA_MATCHED_SEARCHES = "chef-matched-searches"

NAME_PATTERN = r"^\w(([\w\-.]+)?\w)?$"

DEFAULT_INVENTORY_TIMEOUT_SECONDS = 10.0
DEFAULT_SEARCH_PAGE_SIZE = 1000
