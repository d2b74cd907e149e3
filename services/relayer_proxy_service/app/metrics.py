"""Metrics definitions for the Relayer Proxy Service."""

from __future__ import annotations

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram


class ProxyMetrics:
    """A container for all Prometheus metrics for the Relayer Proxy Service."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """Initialize metrics with optional registry for test isolation."""
        if registry is None:
            registry = REGISTRY
        self.http_requests_total = Counter(
            "relayer_proxy_http_requests_total",
            "Total number of HTTP requests for Relayer Proxy Service.",
            ["method", "endpoint", "http_status"],
            registry=registry,
        )
        self.http_request_duration_seconds = Histogram(
            "relayer_proxy_http_request_duration_seconds",
            "HTTP request duration in seconds for Relayer Proxy Service.",
            ["method", "endpoint"],
            registry=registry,
        )
        self.upstream_calls_total = Counter(
            "relayer_proxy_upstream_calls_total",
            "Total number of calls to the relayer backend.",
            ["method", "endpoint", "status_code"],
            registry=registry,
        )
        self.upstream_call_duration_seconds = Histogram(
            "relayer_proxy_upstream_call_duration_seconds",
            "Duration of calls to the relayer backend in seconds.",
            ["method", "endpoint"],
            registry=registry,
        )
        self.proxy_errors_total = Counter(
            "relayer_proxy_errors_total",
            "Total number of relayer proxy errors.",
            ["endpoint", "error_type"],
            registry=registry,
        )
