"""Middleware for Relayer Proxy Service."""

from typing import Any
from uuid import UUID, uuid4

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from veridex_service_libs.logging_utils import bind_request_context, create_service_logger

logger = create_service_logger("relayer_proxy.middleware")


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """Middleware to ensure every request has a correlation ID as UUID."""

    async def dispatch(self, request: Request, call_next):
        """Extract or generate correlation ID and store as UUID in request state."""
        x_correlation_id = request.headers.get("X-Correlation-ID")
        if x_correlation_id:
            try:
                correlation_id = UUID(x_correlation_id)
            except ValueError:
                logger.warning(
                    f"Invalid correlation ID format: {x_correlation_id}, generating new one"
                )
                correlation_id = uuid4()
        else:
            correlation_id = uuid4()

        request.state.correlation_id = correlation_id
        bind_request_context(str(correlation_id), method=request.method, path=request.url.path)

        response = await call_next(request)

        response.headers["X-Correlation-ID"] = str(correlation_id)

        return response


class DevelopmentMiddleware(BaseHTTPMiddleware):
    """Middleware for development-specific headers and debugging."""

    def __init__(self, app: Any, settings: Any | None = None) -> None:
        super().__init__(app)
        self.settings = settings

    def is_development_environment(self) -> bool:
        if not self.settings:
            return False
        return bool(self.settings.is_development())

    async def dispatch(self, request: Request, call_next):
        if not self.is_development_environment():
            return await call_next(request)

        request.state.development_mode = True

        response = await call_next(request)

        response.headers["X-Veridex-Environment"] = "development"
        response.headers["X-Veridex-Service"] = getattr(
            self.settings, "SERVICE_NAME", "relayer-proxy-service"
        )

        logger.debug(
            f"Development request: {request.method} {request.url.path} "
            f"from {request.client.host if request.client else 'unknown'}"
        )

        return response
