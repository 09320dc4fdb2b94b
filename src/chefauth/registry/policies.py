# Copyright (c) chefauth Contributors. All rights reserved.
# Licensed under the MIT License.
"""Chef policy registry."""

from ..constants import POLICY_PREFIX
from .base import RecordRegistry
from .models import ChefPolicy


class PolicyRegistry(RecordRegistry[ChefPolicy]):
    """Records matched 1:1 against a node's ``policy_name``."""

    prefix = POLICY_PREFIX
    record_type = ChefPolicy
    kind = "policy"
