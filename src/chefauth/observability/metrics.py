# Copyright (c) chefauth Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Prometheus Metrics Integration.

Provides metrics collection for chefauth.
"""

from __future__ import annotations

from typing import Optional

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram


class AuthMetrics:
    """
    Prometheus metrics collector for chefauth.

    Exposes metrics:
    - chefauth_login_total{result="success|denied|error"}
    - chefauth_renewal_total{result="success|denied|error"}
    - chefauth_search_cache_total{outcome="hit|miss|bypass"}
    - chefauth_inventory_request_duration_seconds{operation="authenticate|search"}

    Pass a private ``CollectorRegistry`` to keep several instances apart
    (tests do this).
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None, prefix: str = "chefauth"):
        registry = registry if registry is not None else REGISTRY

        self.login_total = Counter(
            f"{prefix}_login_total",
            "Login attempts by result",
            ["result"],
            registry=registry,
        )
        self.renewal_total = Counter(
            f"{prefix}_renewal_total",
            "Lease renewals by result",
            ["result"],
            registry=registry,
        )
        self.search_cache_total = Counter(
            f"{prefix}_search_cache_total",
            "Saved search membership lookups by cache outcome",
            ["outcome"],
            registry=registry,
        )
        self.inventory_request_duration = Histogram(
            f"{prefix}_inventory_request_duration_seconds",
            "Chef server request duration in seconds",
            ["operation"],
            registry=registry,
        )

    def record_login(self, result: str) -> None:
        self.login_total.labels(result=result).inc()

    def record_renewal(self, result: str) -> None:
        self.renewal_total.labels(result=result).inc()

    def record_cache(self, outcome: str) -> None:
        self.search_cache_total.labels(outcome=outcome).inc()

    def observe_inventory(self, operation: str, seconds: float) -> None:
        self.inventory_request_duration.labels(operation=operation).observe(seconds)
