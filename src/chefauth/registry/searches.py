# Copyright (c) chefauth Contributors. All rights reserved.
# Licensed under the MIT License.
"""Saved search registry."""

from ..constants import SEARCH_PREFIX
from .base import RecordRegistry
from .models import ChefSearch


class SearchRegistry(RecordRegistry[ChefSearch]):
    prefix = SEARCH_PREFIX
    record_type = ChefSearch
    kind = "search"
