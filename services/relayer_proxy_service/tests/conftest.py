"""
Shared fixtures for Relayer Proxy Service tests.

The app under test is built by the production factory with a test DI
container, and driven in-process through httpx's ASGI transport.
"""

from __future__ import annotations

import pytest
from dishka import make_async_container
from dishka.integrations.fastapi import FastapiProvider
from httpx import ASGITransport, AsyncClient

from services.relayer_proxy_service.app.main import create_app
from services.relayer_proxy_service.config import Settings
from services.relayer_proxy_service.tests.test_provider import (
    InfrastructureTestProvider,
    make_test_settings,
)


@pytest.fixture
def test_settings() -> Settings:
    """Development settings pointing at the mocked relayer."""
    return make_test_settings()


@pytest.fixture
async def container(test_settings: Settings):
    """Create test container with standardized test providers."""
    container = make_async_container(
        InfrastructureTestProvider(settings=test_settings),
        FastapiProvider(),  # Required for Request context
    )
    yield container
    await container.close()


@pytest.fixture
async def client(container):
    """Create test client bound to the test container."""
    app = create_app(container)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def production_client():
    """Test client whose settings mark the service as running in production."""
    container = make_async_container(
        InfrastructureTestProvider(settings=make_test_settings(ENVIRONMENT="production")),
        FastapiProvider(),
    )
    app = create_app(container)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    await container.close()
