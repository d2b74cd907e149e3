"""Relayer forwarder implementation.

Forwards one inbound request to the single configured relayer upstream:
path normalization, allow-listed headers in both directions, body
re-encoding and a hard deadline around the upstream call.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Iterable, Mapping
from typing import Any

import httpx

from services.relayer_proxy_service.config import Settings
from services.relayer_proxy_service.models import (
    ProxiedResponse,
    RelayerProxyError,
    RelayerRequestError,
    RelayerTimeoutError,
    RelayerUnreachableError,
)
from services.relayer_proxy_service.protocols import MetricsProtocol, RelayerForwarderProtocol
from veridex_service_libs.logging_utils import create_service_logger

logger = create_service_logger("relayer_proxy.forwarder")

# Request headers copied to the relayer; everything else (host, cookie, ...) is dropped
FORWARDED_REQUEST_HEADERS = ("content-type", "accept", "x-api-key", "authorization")

# Relayer response headers copied back to the browser
RELAYED_RESPONSE_HEADERS = ("content-type", "x-request-id")

BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})

# Error text fragments that identify a connection-level failure
UNREACHABLE_MARKERS = ("ECONNREFUSED", "ETIMEDOUT", "Connection refused", "Connect call failed")

JSON_MEDIA_TYPE = "application/json"


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant: {name}")


def parse_json(raw: bytes | str) -> Any:
    """Parse strict JSON; NaN and Infinity are rejected like any other invalid token."""
    return json.loads(raw, parse_constant=_reject_constant)


def normalize_relayer_path(path: str, api_prefix: str = "api/v1") -> str:
    """Strip a caller-supplied API version prefix so it is not doubled upstream.

    >>> normalize_relayer_path("api/v1/aptos/vault")
    'aptos/vault'
    >>> normalize_relayer_path("api/v1aptos")
    'aptos'
    """
    prefix = api_prefix.strip("/")
    if not prefix:
        return path
    while path.startswith(prefix):
        if path.startswith(f"{prefix}/"):
            path = path[len(prefix) + 1 :]
        else:
            path = path[len(prefix) :]
    return path


def build_target_url(base_url: str, path_segments: Iterable[str], api_prefix: str = "api/v1") -> str:
    prefix = api_prefix.strip("/")
    path = normalize_relayer_path("/".join(path_segments), prefix)
    return f"{base_url.rstrip('/')}/{prefix}/{path}"


def metrics_endpoint(path_segments: Iterable[str], api_prefix: str = "api/v1") -> str:
    """Metric label for a relayer path: its first segment only.

    Deeper segments carry vault IDs, addresses and hashes.

    >>> metrics_endpoint(["api", "v1", "vault", "0xabc"])
    '/vault'
    """
    path = normalize_relayer_path("/".join(path_segments), api_prefix.strip("/"))
    return "/" + path.strip("/").split("/", 1)[0]


def select_forwarded_headers(headers: Mapping[str, str]) -> dict[str, str]:
    lowered = {key.lower(): value for key, value in headers.items()}
    return {name: lowered[name] for name in FORWARDED_REQUEST_HEADERS if lowered.get(name)}


def encode_request_body(method: str, content_type: str, body: bytes | None) -> bytes | None:
    """Encode the outbound body.

    JSON bodies are parsed and re-serialized; an unparsable JSON body is sent
    as no body at all. Other content types pass through untouched. Only
    POST, PUT and PATCH carry a body.
    """
    if method.upper() not in BODY_METHODS:
        return None
    if JSON_MEDIA_TYPE in content_type.lower():
        try:
            parsed = parse_json(body or b"")
        except ValueError:
            return None
        return json.dumps(parsed, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    return body if body is not None else b""


def decode_upstream_body(response: httpx.Response) -> tuple[Any, bool]:
    """Return ``(payload, wrapped)``; text bodies are wrapped in a ``data`` envelope."""
    body: Any
    if JSON_MEDIA_TYPE in response.headers.get("content-type", "").lower():
        try:
            body = parse_json(response.content)
        except ValueError:
            body = response.text
    else:
        body = response.text

    if isinstance(body, str):
        return {"data": body}, True
    return body, False


def select_relayed_headers(response: httpx.Response, wrapped: bool) -> dict[str, str]:
    relayed = {
        name: response.headers[name]
        for name in RELAYED_RESPONSE_HEADERS
        if response.headers.get(name)
    }
    if wrapped:
        # The envelope is a JSON document whatever the relayer labelled its text as
        relayed["content-type"] = JSON_MEDIA_TYPE
    return relayed


def classify_failure(
    exc: BaseException, timeout_seconds: float, target_url: str | None = None
) -> RelayerProxyError:
    """Map an exception raised around the relayer call onto the proxy error taxonomy."""
    if isinstance(exc, RelayerProxyError):
        return exc
    if isinstance(exc, TimeoutError) or (
        isinstance(exc, httpx.TimeoutException) and not isinstance(exc, httpx.ConnectTimeout)
    ):
        return RelayerTimeoutError(timeout_seconds, target_url=target_url)

    message = str(exc) or type(exc).__name__
    if isinstance(exc, (httpx.ConnectError, httpx.ConnectTimeout)) or any(
        marker in message for marker in UNREACHABLE_MARKERS
    ):
        return RelayerUnreachableError(message, target_url=target_url)
    return RelayerRequestError(message, target_url=target_url)


class RelayerForwarder(RelayerForwarderProtocol):
    """Forwards requests to the relayer using a shared httpx AsyncClient.

    Holds no per-request state, so one instance serves every concurrent request.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        settings: Settings,
        metrics: MetricsProtocol | None = None,
    ) -> None:
        self._client = client
        self._settings = settings
        self._metrics = metrics

    async def forward(
        self,
        method: str,
        path_segments: list[str],
        headers: Mapping[str, str],
        query_params: Mapping[str, str],
        body: bytes | None,
    ) -> ProxiedResponse:
        method = method.upper()
        settings = self._settings
        target_url = build_target_url(
            settings.RELAYER_URL, path_segments, settings.RELAYER_API_PREFIX
        )
        # Internal addresses are only exposed to the caller in development
        exposed_target = target_url if settings.is_development() else None
        endpoint = metrics_endpoint(path_segments, settings.RELAYER_API_PREFIX)

        if settings.is_development():
            logger.debug(f"[Relayer Proxy] {method} {target_url}")

        forwarded_headers = select_forwarded_headers(headers)
        content = encode_request_body(method, forwarded_headers.get("content-type", ""), body)

        try:
            async with asyncio.timeout(settings.RELAYER_TIMEOUT_SECONDS):
                request = self._client.build_request(
                    method=method,
                    url=target_url,
                    headers=forwarded_headers,
                    params=dict(query_params),
                    content=content,
                )
                if self._metrics is not None:
                    with self._metrics.upstream_call_duration_seconds.labels(
                        method=method, endpoint=endpoint
                    ).time():
                        response = await self._client.send(request)
                else:
                    response = await self._client.send(request)

            payload, wrapped = decode_upstream_body(response)
            relayed_headers = select_relayed_headers(response, wrapped)
        except Exception as exc:
            error = classify_failure(exc, settings.RELAYER_TIMEOUT_SECONDS, exposed_target)
            logger.error(
                f"[Relayer Proxy] Error proxying {method} to {target_url}: {exc!r}",
                error_type=error.error_type,
            )
            if self._metrics is not None:
                self._metrics.upstream_calls_total.labels(
                    method=method, endpoint=endpoint, status_code=error.error_type
                ).inc()
            raise error from exc

        if self._metrics is not None:
            self._metrics.upstream_calls_total.labels(
                method=method, endpoint=endpoint, status_code=str(response.status_code)
            ).inc()

        logger.info(
            f"Relayer call completed: {method} {endpoint}, status: {response.status_code}"
        )
        return ProxiedResponse(
            status_code=response.status_code,
            payload=payload,
            headers=relayed_headers,
        )
