"""Startup setup for Relayer Proxy Service."""

from __future__ import annotations

from dishka import AsyncContainer, make_async_container
from dishka.integrations.fastapi import FastapiProvider, setup_dishka
from fastapi import FastAPI

from services.relayer_proxy_service.app.di import RelayerProxyProvider
from services.relayer_proxy_service.config import Settings
from veridex_service_libs.logging_utils import configure_service_logging, create_service_logger

logger = create_service_logger("relayer_proxy_service.startup")


def setup_logging(config: Settings) -> None:
    """Configure structlog once per process from service settings."""
    configure_service_logging(
        config.SERVICE_NAME,
        environment=config.ENVIRONMENT.value,
        log_level=config.LOG_LEVEL,
    )


def create_di_container() -> AsyncContainer:
    """Create and configure the DI container."""
    try:
        logger.info("Creating DI container...")
        container = make_async_container(
            RelayerProxyProvider(),
            FastapiProvider(),  # Provides Request object to context
        )
        logger.info("DI container created successfully")
        return container
    except Exception as e:
        logger.critical(f"Failed to create DI container: {e}", exc_info=True)
        raise


def setup_dependency_injection(app: FastAPI, container: AsyncContainer) -> None:
    """Setup Dishka integration with FastAPI."""
    try:
        logger.info("Setting up dependency injection...")
        setup_dishka(container, app)
        logger.info("Dependency injection setup completed")
    except Exception as e:
        logger.critical(f"Failed to setup dependency injection: {e}", exc_info=True)
        raise
