"""
Veridex Service Libraries Package.

Shared utilities used across Veridex web services: structured logging
and framework error handlers.
"""

from .logging_utils import configure_service_logging, create_service_logger

__all__ = [
    "configure_service_logging",
    "create_service_logger",
]

# Framework-specific error handlers should be imported directly from:
# - veridex_service_libs.error_handling.fastapi
