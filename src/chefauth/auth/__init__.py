# Copyright (c) chefauth Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Login resolution, saved search caching and lease renewal.
"""

from .cache import SearchCache, SearchCacheEntry, SearchMatch
from .decision import AuthDecision, LeaseState
from .renewal import RenewalEngine
from .resolution import ResolutionEngine, RuleMatch, merge_policies

__all__ = [
    "SearchCache",
    "SearchCacheEntry",
    "SearchMatch",
    "AuthDecision",
    "LeaseState",
    "RenewalEngine",
    "ResolutionEngine",
    "RuleMatch",
    "merge_policies",
]
