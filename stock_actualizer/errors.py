"""Errors – SRP: one structured hierarchy for every failure the service reports.

Each error carries a code for programmatic handling and a data dict with the
context that gets logged once at the pass boundary.
"""
from __future__ import annotations

from typing import Any, Optional


class ActualizerError(Exception):
    """Base error.

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data
    """

    def __init__(self, code: str, message: str = "", **data: Any) -> None:
        self.code = code
        self.message = message or code
        self.data = data
        super().__init__(self.message)

    def as_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "data": dict(self.data)}


class StartupError(ActualizerError):
    """Fatal: missing credential or unusable database. The process does not start."""


class DataAccessError(ActualizerError):
    """Query or row-decoding failure. Aborts the current pass."""


class PassCancelled(ActualizerError):
    """The cancellation token fired while a pass was running."""

    def __init__(self, message: str = "pass cancelled") -> None:
        super().__init__("CANCELLED", message)


class RemoteServiceError(ActualizerError):
    """Non-success response or transport failure from MoySklad.

    The decoded response body is kept verbatim in ``body``.
    """

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        body: Any = None,
        method: str = "",
        url: str = "",
    ) -> None:
        super().__init__("REMOTE_ERROR", message, status=status, body=body, method=method, url=url)

    @property
    def status(self) -> Optional[int]:
        return self.data.get("status")

    @property
    def body(self) -> Any:
        return self.data.get("body")

    @property
    def method(self) -> str:
        return self.data.get("method", "")

    @property
    def url(self) -> str:
        return self.data.get("url", "")

    @property
    def messages(self) -> list[str]:
        """Error strings from a MoySklad ``{"errors": [{"error": ...}]}`` payload."""
        body = self.body
        if not isinstance(body, dict):
            return []
        out = []
        for item in body.get("errors") or []:
            if isinstance(item, dict) and item.get("error"):
                out.append(str(item["error"]))
        return out

    def __str__(self) -> str:
        detail = "; ".join(self.messages)
        parts = [self.message]
        if self.method or self.url:
            parts.append(f"{self.method} {self.url}".strip())
        if self.status is not None:
            parts.append(f"status={self.status}")
        if detail:
            parts.append(detail)
        return " | ".join(parts)
