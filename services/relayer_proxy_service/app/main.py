from __future__ import annotations

from dishka import AsyncContainer
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from services.relayer_proxy_service.app.startup_setup import (
    create_di_container,
    setup_dependency_injection,
    setup_logging,
)
from services.relayer_proxy_service.config import settings
from veridex_service_libs.error_handling.fastapi import (
    register_error_handlers as register_fastapi_error_handlers,
)

from ..routers import relayer_routes
from ..routers.health_routes import router as health_router
from .middleware import CorrelationIDMiddleware


def create_app(container: AsyncContainer | None = None) -> FastAPI:
    """Build the application; tests pass their own DI container."""
    setup_logging(settings)

    app = FastAPI(
        title=settings.SERVICE_NAME,
        version="1.0.0",
        description=(
            "Veridex Relayer Proxy - forwards browser calls to the relayer backend "
            "without exposing its address"
        ),
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # Register error handlers
    register_fastapi_error_handlers(app)

    # Add Correlation ID Middleware (must be early in chain)
    app.add_middleware(CorrelationIDMiddleware)

    # Add Development Middleware (only in development environment)
    if settings.is_development():
        from .middleware import DevelopmentMiddleware

        app.add_middleware(DevelopmentMiddleware, settings=settings)

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.CORS_ALLOW_METHODS,
        allow_headers=settings.CORS_ALLOW_HEADERS,
    )

    # Include routers
    app.include_router(health_router, tags=["Health"])
    app.include_router(relayer_routes.router, prefix="/api", tags=["Relayer"])

    # Setup Dishka DI
    if container is None:
        container = create_di_container()
    setup_dependency_injection(app, container)

    # Store container reference for cleanup
    app.state.di_container = container

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.relayer_proxy_service.app.main:app",
        host=settings.HTTP_HOST,
        port=settings.HTTP_PORT,
        reload=settings.is_development(),
        log_level=settings.LOG_LEVEL.lower(),
    )
