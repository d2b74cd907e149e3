from __future__ import annotations

import asyncio

import httpx
import pytest
from dishka import make_async_container
from dishka.integrations.fastapi import FastapiProvider
from httpx import ASGITransport, AsyncClient, Response
from prometheus_client import CollectorRegistry
from respx import MockRouter

from services.relayer_proxy_service.app.main import create_app
from services.relayer_proxy_service.tests.test_provider import (
    TEST_RELAYER_URL,
    InfrastructureTestProvider,
    make_test_settings,
)

RELAYER_API = f"{TEST_RELAYER_URL}/api/v1"


@pytest.fixture
async def short_deadline_client():
    """Test client whose relayer deadline expires after 50 ms."""
    container = make_async_container(
        InfrastructureTestProvider(settings=make_test_settings(RELAYER_TIMEOUT_SECONDS=0.05)),
        FastapiProvider(),
    )
    app = create_app(container)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    await container.close()


@pytest.mark.asyncio
async def test_proxy_relayer_requests_get(client: AsyncClient, respx_mock: MockRouter):
    """GET requests are forwarded under the versioned relayer prefix with their query."""
    downstream_url = f"{RELAYER_API}/aptos/vault?owner=0xabc"
    mock_route = respx_mock.get(downstream_url).mock(
        return_value=Response(200, json={"status": "ok"})
    )

    response = await client.get("/api/relayer/aptos/vault?owner=0xabc")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert mock_route.called
    assert len(mock_route.calls) == 1
    assert str(mock_route.calls.last.request.url) == downstream_url


@pytest.mark.asyncio
async def test_proxy_strips_duplicated_api_prefix(client: AsyncClient, respx_mock: MockRouter):
    """A caller that already embeds api/v1 does not get it doubled upstream."""
    mock_route = respx_mock.get(f"{RELAYER_API}/aptos/vault").mock(
        return_value=Response(200, json={"vault": "0x1"})
    )

    response = await client.get("/api/relayer/api/v1/aptos/vault")

    assert response.status_code == 200
    assert mock_route.called
    assert mock_route.calls.last.request.url.path == "/api/v1/aptos/vault"


@pytest.mark.asyncio
async def test_proxy_forwards_last_value_of_repeated_query_params(
    client: AsyncClient, respx_mock: MockRouter
):
    mock_route = respx_mock.get(f"{RELAYER_API}/balances?chain=2&limit=5").mock(
        return_value=Response(200, json=[])
    )

    response = await client.get("/api/relayer/balances?chain=1&chain=2&limit=5")

    assert response.status_code == 200
    assert response.json() == []
    params = mock_route.calls.last.request.url.params
    assert params.get_list("chain") == ["2"]
    assert params["limit"] == "5"


@pytest.mark.asyncio
async def test_proxy_relayer_requests_post_json(client: AsyncClient, respx_mock: MockRouter):
    """JSON bodies are re-serialized and the relayer status is mirrored."""
    mock_route = respx_mock.post(f"{RELAYER_API}/aptos/vault").mock(
        return_value=Response(201, json={"id": "abc"})
    )

    response = await client.post("/api/relayer/aptos/vault", json={"a": 1})

    assert response.status_code == 201
    assert response.json() == {"id": "abc"}
    forwarded = mock_route.calls.last.request
    assert forwarded.content == b'{"a":1}'
    assert forwarded.headers["content-type"] == "application/json"


@pytest.mark.asyncio
async def test_proxy_drops_malformed_json_body(client: AsyncClient, respx_mock: MockRouter):
    """A JSON body that does not parse is sent as no body rather than failing."""
    mock_route = respx_mock.post(f"{RELAYER_API}/session").mock(
        return_value=Response(200, json={"ok": True})
    )

    response = await client.post(
        "/api/relayer/session",
        content=b"{not json",
        headers={"content-type": "application/json"},
    )

    assert response.status_code == 200
    assert mock_route.calls.last.request.content == b""


@pytest.mark.asyncio
async def test_proxy_forwards_text_body_unchanged(client: AsyncClient, respx_mock: MockRouter):
    mock_route = respx_mock.put(f"{RELAYER_API}/notes/1").mock(
        return_value=Response(200, json={"updated": True})
    )

    response = await client.put(
        "/api/relayer/notes/1",
        content=b"plain {text}",
        headers={"content-type": "text/plain"},
    )

    assert response.status_code == 200
    assert mock_route.calls.last.request.content == b"plain {text}"


@pytest.mark.asyncio
async def test_proxy_delete_never_forwards_body(client: AsyncClient, respx_mock: MockRouter):
    mock_route = respx_mock.delete(f"{RELAYER_API}/sessions/7").mock(
        return_value=Response(200, json={"deleted": True})
    )

    response = await client.request(
        "DELETE",
        "/api/relayer/sessions/7",
        content=b'{"force":true}',
        headers={"content-type": "application/json"},
    )

    assert response.status_code == 200
    assert response.json() == {"deleted": True}
    assert mock_route.calls.last.request.content == b""


@pytest.mark.asyncio
async def test_proxy_forwards_only_allow_listed_headers(
    client: AsyncClient, respx_mock: MockRouter
):
    mock_route = respx_mock.post(f"{RELAYER_API}/sponsor").mock(
        return_value=Response(200, json={"ok": True})
    )

    response = await client.post(
        "/api/relayer/sponsor",
        json={"tx": "0x01"},
        headers={
            "cookie": "x=1",
            "x-api-key": "k",
            "authorization": "Bearer token",
            "x-internal-trace": "secret",
        },
    )

    assert response.status_code == 200
    forwarded = mock_route.calls.last.request.headers
    assert forwarded["content-type"] == "application/json"
    assert forwarded["x-api-key"] == "k"
    assert forwarded["authorization"] == "Bearer token"
    assert "cookie" not in forwarded
    assert "x-internal-trace" not in forwarded
    assert "x-correlation-id" not in forwarded


@pytest.mark.asyncio
async def test_proxy_relays_only_allow_listed_response_headers(
    client: AsyncClient, respx_mock: MockRouter
):
    respx_mock.get(f"{RELAYER_API}/status").mock(
        return_value=Response(
            200,
            json={"healthy": True},
            headers={"x-request-id": "req-42", "set-cookie": "relayer=1", "server": "koyeb"},
        )
    )

    response = await client.get("/api/relayer/status")

    assert response.status_code == 200
    assert response.headers["x-request-id"] == "req-42"
    assert response.headers["content-type"] == "application/json"
    assert "set-cookie" not in response.headers
    assert "server" not in response.headers


@pytest.mark.asyncio
async def test_proxy_wraps_text_response(client: AsyncClient, respx_mock: MockRouter):
    """Non-JSON relayer bodies come back as a JSON envelope."""
    respx_mock.get(f"{RELAYER_API}/ping").mock(return_value=Response(200, text="ok"))

    response = await client.get("/api/relayer/ping")

    assert response.status_code == 200
    assert response.json() == {"data": "ok"}
    assert response.headers["content-type"].startswith("application/json")


@pytest.mark.asyncio
async def test_proxy_wraps_unparsable_json_response(client: AsyncClient, respx_mock: MockRouter):
    respx_mock.get(f"{RELAYER_API}/broken").mock(
        return_value=Response(
            500, content=b"Internal Server Error", headers={"content-type": "application/json"}
        )
    )

    response = await client.get("/api/relayer/broken")

    assert response.status_code == 500
    assert response.json() == {"data": "Internal Server Error"}


@pytest.mark.asyncio
async def test_proxy_passes_relayer_error_status_through(
    client: AsyncClient, respx_mock: MockRouter
):
    """Relayer answers, even errors, are relayed with their own status code."""
    respx_mock.get(f"{RELAYER_API}/vault/missing").mock(
        return_value=Response(404, json={"error": "Vault not found"})
    )

    response = await client.get("/api/relayer/vault/missing")

    assert response.status_code == 404
    assert response.json() == {"error": "Vault not found"}


@pytest.mark.asyncio
async def test_proxy_relays_no_content_without_body(client: AsyncClient, respx_mock: MockRouter):
    respx_mock.delete(f"{RELAYER_API}/sessions/9").mock(return_value=Response(204))

    response = await client.delete("/api/relayer/sessions/9")

    assert response.status_code == 204
    assert response.content == b""


@pytest.mark.asyncio
async def test_proxy_connection_refused_returns_502(client: AsyncClient, respx_mock: MockRouter):
    respx_mock.get(f"{RELAYER_API}/aptos/vault").mock(
        side_effect=httpx.ConnectError("[Errno 111] Connection refused")
    )

    response = await client.get("/api/relayer/aptos/vault")

    assert response.status_code == 502
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "Cannot reach relayer service"
    assert "Connection refused" in body["details"]
    assert body["targetUrl"] == f"{RELAYER_API}/aptos/vault"


@pytest.mark.asyncio
async def test_proxy_read_timeout_returns_502(client: AsyncClient, respx_mock: MockRouter):
    respx_mock.post(f"{RELAYER_API}/sui/execute").mock(
        side_effect=httpx.ReadTimeout("timed out")
    )

    response = await client.post("/api/relayer/sui/execute", json={})

    assert response.status_code == 502
    body = response.json()
    assert body["error"] == "Relayer request timed out"
    assert body["details"] == "Request took longer than 30 seconds"


@pytest.mark.asyncio
async def test_proxy_hides_target_url_in_production(
    production_client: AsyncClient, respx_mock: MockRouter
):
    respx_mock.get(f"{RELAYER_API}/aptos/vault").mock(
        side_effect=httpx.ConnectError("[Errno 111] Connection refused")
    )

    response = await production_client.get("/api/relayer/aptos/vault")

    assert response.status_code == 502
    body = response.json()
    assert body["error"] == "Cannot reach relayer service"
    assert "targetUrl" not in body


@pytest.mark.asyncio
async def test_proxy_echoes_correlation_id(client: AsyncClient, respx_mock: MockRouter):
    respx_mock.get(f"{RELAYER_API}/ping").mock(return_value=Response(200, json={}))
    correlation_id = "550e8400-e29b-41d4-a716-446655440000"

    response = await client.get("/api/relayer/ping", headers={"X-Correlation-ID": correlation_id})

    assert response.headers["X-Correlation-ID"] == correlation_id


@pytest.mark.asyncio
async def test_proxy_records_request_metrics(
    client: AsyncClient, container, respx_mock: MockRouter
):
    respx_mock.get(f"{RELAYER_API}/ping").mock(return_value=Response(200, json={}))
    respx_mock.get(f"{RELAYER_API}/down").mock(side_effect=httpx.ConnectError("refused"))

    await client.get("/api/relayer/ping")
    await client.get("/api/relayer/down")

    registry = await container.get(CollectorRegistry)
    assert (
        registry.get_sample_value(
            "relayer_proxy_http_requests_total",
            {"method": "GET", "endpoint": "/relayer/ping", "http_status": "200"},
        )
        == 1.0
    )
    assert (
        registry.get_sample_value(
            "relayer_proxy_errors_total",
            {"endpoint": "/relayer/down", "error_type": "unreachable"},
        )
        == 1.0
    )
    assert (
        registry.get_sample_value(
            "relayer_proxy_upstream_calls_total",
            {"method": "GET", "endpoint": "/ping", "status_code": "200"},
        )
        == 1.0
    )


@pytest.mark.asyncio
async def test_proxy_wraps_json_with_non_standard_constants(
    client: AsyncClient, respx_mock: MockRouter
):
    """NaN is not JSON; the relayer body is relayed as text rather than failing the render."""
    respx_mock.get(f"{RELAYER_API}/nan").mock(
        return_value=Response(
            200, content=b'{"x": NaN}', headers={"content-type": "application/json"}
        )
    )

    response = await client.get("/api/relayer/nan")

    assert response.status_code == 200
    assert response.json() == {"data": '{"x": NaN}'}


@pytest.mark.asyncio
async def test_proxy_drops_json_body_with_non_standard_constants(
    client: AsyncClient, respx_mock: MockRouter
):
    mock_route = respx_mock.post(f"{RELAYER_API}/sponsor").mock(
        return_value=Response(200, json={"ok": True})
    )

    response = await client.post(
        "/api/relayer/sponsor",
        content=b'{"amount": Infinity}',
        headers={"content-type": "application/json"},
    )

    assert response.status_code == 200
    assert mock_route.calls.last.request.content == b""


@pytest.mark.asyncio
async def test_proxy_deadline_expiry_returns_502(
    short_deadline_client: AsyncClient, respx_mock: MockRouter
):
    async def never_answers(request: httpx.Request) -> Response:
        await asyncio.sleep(1)
        return Response(200, json={})

    respx_mock.get(f"{RELAYER_API}/aptos/vault").mock(side_effect=never_answers)

    response = await short_deadline_client.get("/api/relayer/aptos/vault")

    assert response.status_code == 502
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "Relayer request timed out"
    assert body["details"] == "Request took longer than 0.05 seconds"


@pytest.mark.asyncio
async def test_proxy_metrics_group_paths_by_first_segment(
    client: AsyncClient, container, respx_mock: MockRouter
):
    respx_mock.get(url__startswith=f"{RELAYER_API}/vault/").mock(
        return_value=Response(200, json={})
    )

    await client.get("/api/relayer/vault/0xabc")
    await client.get("/api/relayer/api/v1/vault/0xdef/balance")

    registry = await container.get(CollectorRegistry)
    assert (
        registry.get_sample_value(
            "relayer_proxy_http_requests_total",
            {"method": "GET", "endpoint": "/relayer/vault", "http_status": "200"},
        )
        == 2.0
    )
    assert (
        registry.get_sample_value(
            "relayer_proxy_upstream_calls_total",
            {"method": "GET", "endpoint": "/vault", "status_code": "200"},
        )
        == 2.0
    )
    assert (
        registry.get_sample_value(
            "relayer_proxy_http_requests_total",
            {"method": "GET", "endpoint": "/relayer/vault/0xabc", "http_status": "200"},
        )
        is None
    )
