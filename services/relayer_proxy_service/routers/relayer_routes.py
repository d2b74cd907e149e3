from __future__ import annotations

from dishka.integrations.fastapi import DishkaRoute, FromDishka
from fastapi import APIRouter, Request
from starlette.responses import JSONResponse, Response

from services.relayer_proxy_service.config import Settings
from services.relayer_proxy_service.implementations.relayer_forwarder import (
    BODY_METHODS,
    metrics_endpoint,
)
from services.relayer_proxy_service.models import RelayerProxyError
from services.relayer_proxy_service.protocols import MetricsProtocol, RelayerForwarderProtocol
from veridex_service_libs.logging_utils import create_service_logger

router = APIRouter(route_class=DishkaRoute)
logger = create_service_logger("relayer_proxy.relayer_routes")

# Statuses that must not carry a response body
NULL_BODY_STATUSES = frozenset({204, 205, 304})


@router.api_route(
    "/relayer/{path:path}",
    methods=["GET", "POST", "PUT", "DELETE"],
    summary="Relayer Proxy",
    description="Proxy requests to the relayer backend without exposing its address",
    response_description="Relayer response, always as a JSON document",
    responses={
        200: {
            "description": "Relayer response (JSON passthrough, or text wrapped in `data`)",
            "content": {
                "application/json": {
                    "examples": {
                        "json_passthrough": {
                            "summary": "JSON relayer body",
                            "value": {"id": "abc"},
                        },
                        "text_envelope": {
                            "summary": "Text relayer body",
                            "value": {"data": "ok"},
                        },
                    }
                }
            },
        },
        502: {
            "description": "The relayer could not be reached or did not answer in time",
            "content": {
                "application/json": {
                    "examples": {
                        "timeout": {
                            "summary": "Relayer did not settle within the deadline",
                            "value": {
                                "success": False,
                                "error": "Relayer request timed out",
                                "details": "Request took longer than 30 seconds",
                            },
                        },
                        "unreachable": {
                            "summary": "Connection refused",
                            "value": {
                                "success": False,
                                "error": "Cannot reach relayer service",
                                "details": "[Errno 111] Connection refused",
                            },
                        },
                    }
                }
            },
        },
    },
)
async def proxy_relayer_requests(
    path: str,
    request: Request,
    forwarder: FromDishka[RelayerForwarderProtocol],
    metrics: FromDishka[MetricsProtocol],
    settings: FromDishka[Settings],
) -> Response:
    """
    Proxy all relayer operations to the relayer backend.

    The browser calls `/api/relayer/aptos/vault`; the relayer receives
    `{RELAYER_URL}/api/v1/aptos/vault`. A leading `api/v1` in the path is
    tolerated and not doubled.

    **Proxy Behavior**:
    - Only `content-type`, `accept`, `x-api-key` and `authorization` are forwarded
    - Query parameters are forwarded verbatim
    - Only `content-type` and `x-request-id` are relayed back
    - Status codes mirror the relayer; failures to reach it return 502
    """
    method = request.method
    endpoint = "/relayer" + metrics_endpoint(path.split("/"), settings.RELAYER_API_PREFIX)

    logger.info(f"Proxying {method} request to relayer: /relayer/{path}")

    body = await request.body() if method in BODY_METHODS else None

    with metrics.http_request_duration_seconds.labels(method=method, endpoint=endpoint).time():
        try:
            proxied = await forwarder.forward(
                method,
                path.split("/"),
                request.headers,
                request.query_params,
                body,
            )
        except RelayerProxyError as exc:
            metrics.http_requests_total.labels(
                method=method, endpoint=endpoint, http_status=str(exc.status_code)
            ).inc()
            metrics.proxy_errors_total.labels(endpoint=endpoint, error_type=exc.error_type).inc()
            raise

    metrics.http_requests_total.labels(
        method=method, endpoint=endpoint, http_status=str(proxied.status_code)
    ).inc()

    if proxied.status_code in NULL_BODY_STATUSES:
        return Response(status_code=proxied.status_code, headers=proxied.headers)

    return JSONResponse(
        content=proxied.payload,
        status_code=proxied.status_code,
        headers=proxied.headers,
    )
