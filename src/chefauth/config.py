# Copyright (c) chefauth Contributors. All rights reserved.
# Licensed under the MIT License.
"""Process-level configuration for the auth backend."""

from pydantic import BaseModel, Field

from .constants import DEFAULT_INVENTORY_TIMEOUT_SECONDS, DEFAULT_SEARCH_PAGE_SIZE
from .storage import StorageConfig


class BackendConfig(BaseModel):
    """Settings that are not stored with the mount.

    The Chef server host and default policies are administrator data and
    live in the store (see ``GlobalConfig``); everything here is chosen by
    whoever runs the process.
    """

    storage: StorageConfig = Field(default_factory=StorageConfig)
    inventory_timeout_seconds: float = Field(
        default=DEFAULT_INVENTORY_TIMEOUT_SECONDS, gt=0, le=300,
        description="Timeout for each Chef server request",
    )
    verify_ssl: bool = Field(default=True, description="Verify the Chef server certificate")
    search_page_size: int = Field(default=DEFAULT_SEARCH_PAGE_SIZE, ge=1, le=10000)
    enable_metrics: bool = True
