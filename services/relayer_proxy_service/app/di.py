from __future__ import annotations

from collections.abc import AsyncIterator

import httpx
from dishka import Provider, Scope, provide
from prometheus_client import REGISTRY, CollectorRegistry

from services.relayer_proxy_service.app.metrics import ProxyMetrics
from services.relayer_proxy_service.config import Settings, settings
from services.relayer_proxy_service.implementations.relayer_forwarder import RelayerForwarder
from services.relayer_proxy_service.protocols import MetricsProtocol, RelayerForwarderProtocol


class RelayerProxyProvider(Provider):
    scope = Scope.APP

    @provide
    def get_config(self) -> Settings:
        return settings

    @provide(scope=Scope.APP)
    async def get_http_client(self, config: Settings) -> AsyncIterator[httpx.AsyncClient]:
        # Per-operation timeouts; the overall deadline is enforced by the forwarder
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(
                config.RELAYER_TIMEOUT_SECONDS,
                connect=config.HTTP_CLIENT_CONNECT_TIMEOUT_SECONDS,
            ),
            follow_redirects=False,
        ) as client:
            yield client

    @provide(scope=Scope.APP)
    def provide_forwarder(
        self, client: httpx.AsyncClient, config: Settings, metrics: MetricsProtocol
    ) -> RelayerForwarderProtocol:
        return RelayerForwarder(client, config, metrics)

    @provide(scope=Scope.APP)
    def provide_metrics(self) -> MetricsProtocol:
        return ProxyMetrics()

    @provide(scope=Scope.APP)
    def provide_registry(self) -> CollectorRegistry:
        return REGISTRY
