"""Value objects and errors exchanged between the relayer routes and the forwarder."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from veridex_service_libs.error_handling import ServiceError


@dataclass(frozen=True)
class ProxiedResponse:
    """What the proxy sends back to the browser for a settled relayer call."""

    status_code: int
    payload: Any
    headers: dict[str, str] = field(default_factory=dict)


class RelayerProxyError(ServiceError):
    """Any failure to complete a relayer call. Always surfaces as 502."""

    status_code = 502
    error_type = "proxy_error"

    def __init__(self, summary: str, details: str, target_url: str | None = None) -> None:
        super().__init__(summary, details, target_url=target_url)
        self.target_url = target_url

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        if self.target_url is not None:
            payload["targetUrl"] = self.target_url
        return payload


class RelayerTimeoutError(RelayerProxyError):
    """The relayer did not settle within the configured deadline."""

    error_type = "timeout"

    def __init__(self, timeout_seconds: float, target_url: str | None = None) -> None:
        super().__init__(
            "Relayer request timed out",
            f"Request took longer than {timeout_seconds:g} seconds",
            target_url=target_url,
        )
        self.timeout_seconds = timeout_seconds


class RelayerUnreachableError(RelayerProxyError):
    """Connection-level failure: refused, reset or timed out while connecting."""

    error_type = "unreachable"

    def __init__(self, details: str, target_url: str | None = None) -> None:
        super().__init__("Cannot reach relayer service", details, target_url=target_url)


class RelayerRequestError(RelayerProxyError):
    """Any other failure while building, sending or reading the relayer call."""

    error_type = "request_failed"

    def __init__(self, details: str, target_url: str | None = None) -> None:
        super().__init__("Relayer request failed", details, target_url=target_url)
