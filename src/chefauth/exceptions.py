# Copyright (c) chefauth Contributors. All rights reserved.
# Licensed under the MIT License.
"""Centralized exception hierarchy for chefauth.

All chefauth exceptions inherit from ChefAuthError, so a host process can
map the whole family onto its own error responses in one place.
"""


class ChefAuthError(Exception):
    """Base exception for all chefauth errors."""


class ValidationError(ChefAuthError):
    """A request field is missing or invalid."""


class RecordExistsError(ValidationError):
    """Create was requested for a record that already exists."""


class RecordNotFoundError(ValidationError):
    """Update was requested for a record that does not exist."""


class NotConfiguredError(ChefAuthError):
    """The global configuration (Chef server host) has not been written."""


class AuthDeniedError(ChefAuthError):
    """The node was rejected by the Chef server or matched no rule."""


class StorageError(ChefAuthError):
    """Errors related to storage backend operations."""


class DecodeError(ChefAuthError):
    """A persisted record could not be decoded."""


class StructuralError(ChefAuthError):
    """The Chef server returned data with an unexpected shape."""


class InventoryError(ChefAuthError):
    """A Chef server call failed for a reason other than authentication."""


__all__ = [
    "ChefAuthError",
    "ValidationError",
    "RecordExistsError",
    "RecordNotFoundError",
    "NotConfiguredError",
    "AuthDeniedError",
    "StorageError",
    "DecodeError",
    "StructuralError",
    "InventoryError",
]
