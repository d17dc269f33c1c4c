"""
Shared metrics configuration for the Sentimatrix Access Layer.
"""

import time
from contextlib import contextmanager
from typing import Any, Dict, Optional

from prometheus_client import Counter, Histogram, CollectorRegistry


class MetricsCollector:
    """Prometheus metrics for the cache-aside access layer.

    Metrics are only registered when a registry is supplied, so several
    collectors can coexist in one process (tests build one per case).
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up cache and store metrics."""
        self._metrics["cache_hits_total"] = Counter(
            "cache_hits_total",
            "Total cache hits",
            ["cache_key"],
            registry=self.registry
        )

        self._metrics["cache_misses_total"] = Counter(
            "cache_misses_total",
            "Total cache misses",
            ["cache_key"],
            registry=self.registry
        )

        self._metrics["cache_degraded_total"] = Counter(
            "cache_degraded_total",
            "Cache calls that fell back to the document store",
            ["operation"],
            registry=self.registry
        )

        self._metrics["cache_invalidations_total"] = Counter(
            "cache_invalidations_total",
            "Cache invalidation attempts",
            ["result"],
            registry=self.registry
        )

        self._metrics["store_operations_total"] = Counter(
            "store_operations_total",
            "Document store operations",
            ["operation", "status"],
            registry=self.registry
        )

        self._metrics["store_operation_duration_seconds"] = Histogram(
            "store_operation_duration_seconds",
            "Document store operation duration in seconds",
            ["operation"],
            registry=self.registry
        )

    def record_cache_hit(self, cache_key: str):
        self._metrics["cache_hits_total"].labels(cache_key=cache_key).inc()

    def record_cache_miss(self, cache_key: str):
        self._metrics["cache_misses_total"].labels(cache_key=cache_key).inc()

    def record_degradation(self, operation: str):
        self._metrics["cache_degraded_total"].labels(operation=operation).inc()

    def record_invalidation(self, result: str):
        self._metrics["cache_invalidations_total"].labels(result=result).inc()

    @contextmanager
    def time_store_operation(self, operation: str):
        """Time a document store call and count it by outcome."""
        start_time = time.perf_counter()
        status = "error"
        try:
            yield
            status = "ok"
        finally:
            duration = time.perf_counter() - start_time
            self._metrics["store_operation_duration_seconds"].labels(operation=operation).observe(duration)
            self._metrics["store_operations_total"].labels(operation=operation, status=status).inc()


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)
