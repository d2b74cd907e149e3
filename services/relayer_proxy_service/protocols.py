"""
Protocols for Relayer Proxy Service.

Routes depend on these protocols, not on concrete implementations, so the
forwarder and metrics can be swapped out by the DI container in tests.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol

from prometheus_client import Counter, Histogram

from services.relayer_proxy_service.models import ProxiedResponse


class RelayerForwarderProtocol(Protocol):
    """Protocol for the single-upstream forwarding operation."""

    async def forward(
        self,
        method: str,
        path_segments: list[str],
        headers: Mapping[str, str],
        query_params: Mapping[str, str],
        body: bytes | None,
    ) -> ProxiedResponse:
        """Forward one inbound request to the relayer and return the relayed response.

        Raises:
            RelayerProxyError: On timeout, connection failure or any other
                failure while building, sending or reading the upstream call.
        """
        ...


class MetricsProtocol(Protocol):
    """Protocol for metrics collection matching ProxyMetrics exactly."""

    @property
    def http_requests_total(self) -> Counter:
        """Total HTTP requests counter."""
        ...

    @property
    def http_request_duration_seconds(self) -> Histogram:
        """HTTP request duration histogram."""
        ...

    @property
    def upstream_calls_total(self) -> Counter:
        """Relayer calls counter."""
        ...

    @property
    def upstream_call_duration_seconds(self) -> Histogram:
        """Relayer call duration histogram."""
        ...

    @property
    def proxy_errors_total(self) -> Counter:
        """Proxy errors counter."""
        ...
