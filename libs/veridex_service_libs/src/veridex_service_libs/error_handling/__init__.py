"""Error handling utilities for Veridex services."""

from .service_error import ServiceError

__all__ = ["ServiceError"]
