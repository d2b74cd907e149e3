"""Base exception type rendered into a JSON error document at the HTTP boundary."""

from __future__ import annotations

from typing import Any


class ServiceError(Exception):
    """
    Exception that knows how to present itself to an HTTP client.

    Subclasses set ``status_code`` and override ``to_payload`` when the wire
    shape differs from the default ``{"success": false, "error", "details"}``.
    """

    status_code: int = 500

    def __init__(self, summary: str, details: str, **context: Any) -> None:
        super().__init__(summary)
        self.summary = summary
        self.details = details
        self.context = context

    def to_payload(self) -> dict[str, Any]:
        return {"success": False, "error": self.summary, "details": self.details}

    def __str__(self) -> str:
        return f"{self.summary}: {self.details}"
