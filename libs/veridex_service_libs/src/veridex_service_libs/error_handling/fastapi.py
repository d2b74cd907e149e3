"""FastAPI exception handlers for ServiceError and unexpected exceptions."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from veridex_service_libs.error_handling.service_error import ServiceError
from veridex_service_libs.logging_utils import create_service_logger

logger = create_service_logger("veridex.error_handling.fastapi")


def _correlation_id(request: Request) -> str | None:
    correlation_id = getattr(request.state, "correlation_id", None)
    return str(correlation_id) if correlation_id is not None else None


async def handle_service_error(request: Request, exc: ServiceError) -> JSONResponse:
    """Render a ServiceError using its own status code and payload."""
    logger.warning(
        "Service error returned to client",
        path=request.url.path,
        status_code=exc.status_code,
        error=exc.summary,
        details=exc.details,
    )
    headers = {}
    correlation_id = _correlation_id(request)
    if correlation_id:
        headers["X-Correlation-ID"] = correlation_id
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload(), headers=headers)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler: never leak a traceback to the client."""
    logger.error(
        f"Unhandled error on {request.method} {request.url.path}: {exc}",
        exc_info=exc,
    )
    content: dict[str, object] = {
        "success": False,
        "error": "Internal server error",
        "details": type(exc).__name__,
    }
    correlation_id = _correlation_id(request)
    if correlation_id:
        content["correlation_id"] = correlation_id
    return JSONResponse(status_code=500, content=content)


def register_error_handlers(app: FastAPI) -> None:
    """Register the shared error handlers on a FastAPI application."""
    app.add_exception_handler(ServiceError, handle_service_error)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, handle_unexpected_error)
