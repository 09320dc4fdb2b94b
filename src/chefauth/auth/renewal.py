# Copyright (c) chefauth Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Lease Renewal

Every renewal re-authenticates the node against the Chef server and
resolves it again against the current registries, so a revoked node or a
deleted rule stops renewals immediately. Stored lease values are never
reused.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from ..exceptions import AuthDeniedError, ChefAuthError
from ..observability import AuthMetrics
from .decision import AuthDecision, LeaseState
from .resolution import ResolutionEngine

logger = logging.getLogger(__name__)


class RenewalEngine:
    def __init__(self, resolution: ResolutionEngine, metrics: Optional[AuthMetrics] = None) -> None:
        self._resolution = resolution
        self._metrics = metrics

    def _record(self, result: str) -> None:
        if self._metrics is not None:
            self._metrics.record_renewal(result)

    @staticmethod
    def load_state(lease_state: Union[LeaseState, Mapping[str, Any], None]) -> LeaseState:
        """Validate persisted lease state; anything missing or malformed is a denial."""
        if lease_state is None:
            raise AuthDeniedError("no lease state found")
        if isinstance(lease_state, LeaseState):
            return lease_state
        try:
            return LeaseState.model_validate(lease_state)
        except PydanticValidationError as exc:
            logger.warning("refusing renewal with malformed lease state")
            raise AuthDeniedError("malformed lease state") from exc

    async def renew(
        self, lease_state: Union[LeaseState, Mapping[str, Any], None]
    ) -> AuthDecision:
        """Re-authorize the lease owner and return fresh lease parameters."""
        try:
            state = self.load_state(lease_state)
            logger.debug("received a renew request for %s", state.node_name)
            decision = await self._resolution.resolve(state.node_name, state.private_key)
        except AuthDeniedError:
            self._record("denied")
            raise
        except ChefAuthError:
            self._record("error")
            raise
        self._record("success")
        return decision
