# Copyright (c) chefauth Contributors. All rights reserved.
# Licensed under the MIT License.
"""Command-line interface for chefauth."""

from .main import cli

__all__ = ["cli"]
