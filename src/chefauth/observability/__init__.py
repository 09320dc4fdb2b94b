# Copyright (c) chefauth Contributors. All rights reserved.
# Licensed under the MIT License.
"""Observability for chefauth."""

from .metrics import AuthMetrics

__all__ = ["AuthMetrics"]
