"""
Shared metrics configuration for the admin data access layer.
"""

from prometheus_client import Counter, Histogram, Info, CollectorRegistry
from typing import Dict, Any, Optional


class MetricsCollector:
    """Centralized metrics collector for the query cache and its transport."""

    def __init__(self, component_name: str, registry: Optional[CollectorRegistry] = None):
        self.component_name = component_name
        # A private registry per collector keeps isolated stores from clashing
        # on metric names.
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up metrics for the component."""

        self._metrics["component_info"] = Info(
            "data_access_component",
            "Data access component information",
            registry=self.registry
        )
        self._metrics["component_info"].info({
            "component": self.component_name,
            "version": "1.0.0"
        })

        # Query cache metrics
        self._metrics["query_cache_requests_total"] = Counter(
            "query_cache_requests_total",
            "Total query cache reads",
            ["resource", "result"],
            registry=self.registry
        )

        self._metrics["query_cache_fetches_total"] = Counter(
            "query_cache_fetches_total",
            "Total fetches issued by the query cache",
            ["resource", "outcome"],
            registry=self.registry
        )

        self._metrics["query_cache_evictions_total"] = Counter(
            "query_cache_evictions_total",
            "Total evicted cache entries",
            ["resource"],
            registry=self.registry
        )

        self._metrics["query_cache_invalidations_total"] = Counter(
            "query_cache_invalidations_total",
            "Total invalidated cache entries",
            ["resource"],
            registry=self.registry
        )

        # Mutation metrics
        self._metrics["mutations_total"] = Counter(
            "mutations_total",
            "Total mutations dispatched",
            ["outcome"],
            registry=self.registry
        )

        # Transport metrics
        self._metrics["api_requests_total"] = Counter(
            "api_requests_total",
            "Total API requests",
            ["method", "resource", "status_code"],
            registry=self.registry
        )

        self._metrics["api_request_duration_seconds"] = Histogram(
            "api_request_duration_seconds",
            "API request duration in seconds",
            ["method", "resource"],
            registry=self.registry
        )

    def get_sample_value(self, name: str, **labels) -> Optional[float]:
        """Read back a sample value from this collector's registry."""
        return self.registry.get_sample_value(name, labels)

    def record_api_request(self, method: str, resource: str, status_code: int, duration: float):
        """Record API request metrics."""
        self._metrics["api_requests_total"].labels(
            method=method,
            resource=resource,
            status_code=str(status_code)
        ).inc()

        self._metrics["api_request_duration_seconds"].labels(
            method=method,
            resource=resource
        ).observe(duration)

    def increment_counter(self, metric_name: str, **labels):
        """Increment a counter metric."""
        if metric_name in self._metrics:
            self._metrics[metric_name].labels(**labels).inc()


def get_metrics_collector(component_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a component."""
    return MetricsCollector(component_name, registry)
